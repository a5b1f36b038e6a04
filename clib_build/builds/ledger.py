"""Build ledger.

Records which package locations have been processed during one run.
A location is claimed atomically before any work happens on it, so two
workers can never both build the same path.
"""

from __future__ import annotations

import logging
import threading

from clib_build.errors import LedgerError
from clib_build.types import BuildOutcome

logger = logging.getLogger(__name__)

# Placeholder held by a path between claim and record
_CLAIMED = None


class BuildLedger:
    """Thread-safe write-once map of canonical path -> BuildOutcome."""

    def __init__(self) -> None:
        self._entries: dict[str, BuildOutcome | None] = {}
        self._lock = threading.Lock()

    def try_claim(self, path: str) -> bool:
        """Claim a path for processing.

        Args:
            path: Canonical package path.

        Returns:
            True if the path was already claimed (the caller must skip it),
            False if this call won the claim.
        """
        with self._lock:
            if path in self._entries:
                return True
            self._entries[path] = _CLAIMED
        logger.debug("Claimed %s", path)
        return False

    def record(self, path: str, outcome: BuildOutcome) -> None:
        """Finalize a claimed path.

        Raises:
            LedgerError: If the path was never claimed or is already final.
        """
        with self._lock:
            if path not in self._entries:
                raise LedgerError(f"Cannot record unclaimed path: {path}")
            if self._entries[path] is not _CLAIMED:
                raise LedgerError(f"Path already recorded: {path}")
            self._entries[path] = outcome
        logger.debug("Recorded %s as %s", path, outcome.value)

    def count_built(self) -> int:
        """Return the number of paths recorded as built."""
        with self._lock:
            return sum(1 for v in self._entries.values() if v is BuildOutcome.BUILT)

    def count_skipped(self) -> int:
        """Return the number of paths recorded as skipped."""
        with self._lock:
            return sum(
                1 for v in self._entries.values() if v is BuildOutcome.SKIPPED
            )

    def snapshot(self) -> dict[str, BuildOutcome]:
        """Return a copy of all finalized entries."""
        with self._lock:
            return {k: v for k, v in self._entries.items() if v is not _CLAIMED}

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["BuildLedger"]
