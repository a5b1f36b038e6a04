"""Build orchestrator.

This module provides the high-level build API:
- Orchestrator.build(): resolve a package, build it once, then recurse
  into its dependencies batch by batch
- Orchestrator.build_targets(): command-line target handling
- Orchestrator.summary(): counts for the final report

Per package the flow is: resolve -> claim in the ledger -> run the
makefile -> record the outcome -> dependencies -> development
dependencies (dev mode only). A path claimed earlier in the run is
returned from immediately, together with its whole subtree.

The install prefix exported to every build is --prefix, else the root
package's prefix, else the prefix of the package being built. The root
package is the manifest in the working directory, or the first target
built when there is none.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from clib_build.builds.ledger import BuildLedger
from clib_build.builds.runner import BuildExecutor
from clib_build.builds.scheduler import BatchScheduler
from clib_build.errors import (
    AllocationFailureError,
    BuildFailedError,
    ClibBuildError,
    PackageNotFoundError,
    ResolverError,
)
from clib_build.types import BuildOutcome, BuildSummary, DependencyRef

if TYPE_CHECKING:
    from clib_build.config import BuildOptions
    from clib_build.packages.resolver import PackageNode, Resolver

logger = logging.getLogger(__name__)


class Orchestrator:
    """Recursively builds a package and its dependency tree."""

    def __init__(
        self,
        options: BuildOptions,
        resolver: Resolver,
        ledger: BuildLedger | None = None,
        executor: BuildExecutor | None = None,
        scheduler: BatchScheduler | None = None,
    ) -> None:
        self.options = options
        self.resolver = resolver
        self.ledger = ledger or BuildLedger()
        self.executor = executor or BuildExecutor(options)
        self.scheduler = scheduler or BatchScheduler(
            options.concurrency,
            propagate_errors=options.propagate_worker_errors,
        )
        self._root: PackageNode | None = None
        self._root_lock = threading.Lock()

    @property
    def root_prefix(self) -> str | None:
        """Install prefix declared by the root package, if any."""
        return self._root.prefix if self._root is not None else None

    def set_root(self, node: PackageNode) -> bool:
        """Make ``node`` the root package unless one is already set.

        Returns:
            True if ``node`` became the root.
        """
        with self._root_lock:
            if self._root is not None:
                return False
            self._root = node
        if node.prefix and self.options.prefix is None:
            logger.debug("Using prefix %s from %s", node.prefix, node.name)
        return True

    def build(self, target: str | Path) -> None:
        """Build the package at ``target`` and everything it depends on.

        The first package built by this orchestrator becomes the root
        package when none was set beforehand.

        Args:
            target: Package directory or slug.

        Raises:
            PackageNotFoundError: If the target cannot be resolved.
            BuildFailedError: If this package's build (or, subject to the
                scheduler's error policy, a dependency's) fails.
            AllocationFailureError: If resources are exhausted.
        """
        node = self._resolve(target)
        self.set_root(node)
        self._build_node(node)

    def _build_path(self, path: Path) -> None:
        self._build_node(self._resolve(path))

    def _resolve(self, target: str | Path) -> PackageNode:
        try:
            return self.resolver.resolve(target)
        except MemoryError as e:
            raise AllocationFailureError(f"Out of memory resolving {target}") from e

    def _build_node(self, node: PackageNode) -> None:
        path = node.canonical_path
        if self.ledger.try_claim(path):
            logger.debug("%s already processed, skipping", path)
            return

        try:
            result = self.executor.build(node, prefix=self.root_prefix or node.prefix)
        except BuildFailedError:
            # Failed builds keep their claim; the run is not retried.
            self.ledger.record(path, BuildOutcome.BUILT)
            raise
        self.ledger.record(path, result.outcome)

        self._build_dependencies(node, node.dependencies)

        if self.options.dev and node.development_dependencies:
            logger.debug("Building development dependencies of %s", node.name)
            self._build_dependencies(node, node.development_dependencies)

    def _build_dependencies(
        self, node: PackageNode, dependencies: Sequence[DependencyRef]
    ) -> None:
        if not dependencies:
            return
        paths = [dep.install_path(self.options.output_dir) for dep in dependencies]
        logger.debug("%s: %d dependency path(s) to build", node.name, len(paths))
        self.scheduler.run_batches(paths, self._build_path)

    def build_targets(
        self, targets: Sequence[str], cwd: Path | None = None
    ) -> None:
        """Build command-line targets.

        No targets builds the package in ``cwd``. Targets starting with '.'
        are paths relative to ``cwd``; any other target is looked up in
        the output directory first and tried as a slug when not found
        there. Every target is attempted; a failure of an earlier target
        is logged, and the last target's failure is raised.

        Args:
            targets: Package directories or slugs.
            cwd: Working directory (defaults to the process cwd).

        Raises:
            PackageNotFoundError, BuildFailedError, AllocationFailureError,
            ResolverError: From the last target, if it failed.
        """
        cwd = cwd or Path.cwd()

        if not targets:
            self.build(cwd)
            return

        self._set_local_root(cwd)

        last_error: ClibBuildError | None = None
        for target in targets:
            try:
                self._build_target(target, cwd)
            except ClibBuildError as e:
                logger.error("%s: %s", target, e)
                last_error = e
            else:
                last_error = None

        if last_error is not None:
            raise last_error

    def _set_local_root(self, cwd: Path) -> None:
        # A working directory without a usable manifest just has no root yet.
        try:
            self.set_root(self.resolver.resolve(cwd))
        except (PackageNotFoundError, ResolverError) as e:
            logger.debug("No root package in %s: %s", cwd, e)

    def _build_target(self, target: str, cwd: Path) -> None:
        if target.startswith("."):
            self.build((cwd / target).resolve())
            return
        candidate = self.options.output_dir / target
        try:
            self.build(candidate)
        except PackageNotFoundError as e:
            # Only retry when the target itself is missing, not a dependency.
            if e.target != str(candidate):
                raise
            logger.debug("%s not found locally, trying as slug", target)
            self.build(target)

    def summary(self) -> BuildSummary:
        """Return built/skipped counts for this run."""
        return BuildSummary(
            built=self.ledger.count_built(),
            skipped=self.ledger.count_skipped(),
            entries=self.ledger.snapshot(),
        )


__all__ = ["Orchestrator"]
