"""Batch scheduler.

Runs a worker over a list of items in consecutive, fixed-size batches.
Items within a batch run in parallel; every batch is joined before the
next one starts. With a concurrency of 1 items run inline, one at a
time, and the first failure aborts the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from typing import TypeVar

from clib_build.config import DEFAULT_CONCURRENCY
from clib_build.errors import AllocationFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive groups of at most ``size`` items, order preserved."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class BatchScheduler:
    """Bounded, batch-synchronous worker pool.

    Attributes:
        concurrency: Maximum workers running at once.
        propagate_errors: Re-raise the first worker failure of a batch
            once the batch has joined. When False, failures are logged
            and the remaining batches still run.
    """

    def __init__(
        self,
        concurrency: int = DEFAULT_CONCURRENCY,
        propagate_errors: bool = True,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.propagate_errors = propagate_errors

    @property
    def sequential(self) -> bool:
        """True when items run inline rather than on worker threads."""
        return self.concurrency <= 1

    def run_batches(self, items: Sequence[T], worker: Callable[[T], None]) -> None:
        """Run ``worker`` over ``items`` batch by batch.

        Args:
            items: Items in the order they should be dispatched.
            worker: Callable invoked once per item; failures are exceptions.

        Raises:
            Exception: The first worker failure (sequential mode always,
                concurrent mode when propagate_errors is set).
            AllocationFailureError: If a worker thread cannot be started.
        """
        if not items:
            return

        if self.sequential:
            for item in items:
                worker(item)
            return

        for index, batch in enumerate(partition(items, self.concurrency)):
            logger.debug("Dispatching batch %d (%d item(s))", index, len(batch))
            errors = self._run_batch(batch, worker)
            if not errors:
                continue
            if self.propagate_errors:
                raise errors[0]
            for error in errors:
                logger.error("Worker failed, continuing: %s", error)

    def _run_batch(
        self, batch: list[T], worker: Callable[[T], None]
    ) -> list[BaseException]:
        with ThreadPoolExecutor(
            max_workers=len(batch), thread_name_prefix="clib-build"
        ) as pool:
            try:
                futures = [pool.submit(worker, item) for item in batch]
            except RuntimeError as e:
                raise AllocationFailureError(
                    f"Cannot start worker thread: {e}"
                ) from e
            # Join barrier
            wait(futures)

        errors: list[BaseException] = []
        for future in futures:
            error = future.exception()
            if error is not None:
                errors.append(error)
        return errors


__all__ = ["BatchScheduler", "partition"]
