"""Build runner for executing package makefiles.

This module handles:
- Composing the clean / build / test make invocations for a package
- Executing them in the package directory with subprocess
- Exporting PREFIX to the build tool environment

Each step is an explicit argv list; steps run in order and the first
non-zero exit stops the sequence.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from clib_build.errors import EXECUTION_ERROR, BuildFailedError
from clib_build.types import BuildOutcome

if TYPE_CHECKING:
    from clib_build.config import BuildOptions
    from clib_build.packages.resolver import PackageNode

logger = logging.getLogger(__name__)

# Signature of the process-spawning collaborator: (argv, cwd, env) -> exit code
CommandRunner = Callable[[list[str], Path, dict[str, str] | None], int]


@dataclass
class BuildResult:
    """Result of building one package.

    Attributes:
        outcome: BUILT if the build tool ran, SKIPPED otherwise.
        exit_code: Exit code of the last step run (0 when skipped).
        steps: The commands that were executed.
        started_at: Build start time.
        finished_at: Build finish time.
    """

    outcome: BuildOutcome
    exit_code: int = 0
    steps: list[list[str]] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None


def compose_build_steps(
    build_tool: str,
    make_program: str = "make",
    clean: str | None = None,
    test: str | None = None,
    force: bool = False,
) -> list[list[str]]:
    """Compose the make invocations for a package.

    Args:
        build_tool: Path to the makefile.
        make_program: Build tool executable.
        clean: Clean target to run first, or None.
        test: Target used instead of the default target, or None.
        force: Add -B to rebuild all targets.

    Returns:
        Commands as lists of strings, in execution order.
    """
    steps: list[list[str]] = []

    if clean:
        steps.append([make_program, "-f", build_tool, clean])

    cmd = [make_program, "-f", build_tool]
    if force:
        cmd.append("-B")
    if test:
        cmd.append(test)
    steps.append(cmd)

    return steps


def build_environment(prefix: Path | str | None) -> dict[str, str] | None:
    """Return the build tool environment, or None to inherit unchanged."""
    if prefix is None:
        return None
    env = dict(os.environ)
    env["PREFIX"] = str(prefix)
    return env


def run_command(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> int:
    """Run a command with stdout/stderr passed through.

    Returns:
        Process exit code.

    Raises:
        OSError: If the process cannot be started.
    """
    result = subprocess.run(cmd, cwd=cwd, env=env, check=False)
    return result.returncode


def run_steps(
    steps: list[list[str]],
    cwd: Path,
    env: dict[str, str] | None = None,
    runner: CommandRunner = run_command,
) -> int:
    """Run steps in order, stopping at the first failure.

    Returns:
        Exit code of the first failing step, or 0.
    """
    for cmd in steps:
        logger.info("Executing build: %s", shlex.join(cmd))
        exit_code = runner(cmd, cwd, env)
        if exit_code != 0:
            return exit_code
    return 0


class BuildExecutor:
    """Builds a single package node according to the run options."""

    def __init__(
        self,
        options: BuildOptions,
        runner: CommandRunner = run_command,
    ) -> None:
        self.options = options
        self.runner = runner

    def build(self, node: PackageNode, prefix: str | None = None) -> BuildResult:
        """Build a package node.

        Args:
            node: Resolved package.
            prefix: Install prefix to use when options carry none.

        Returns:
            BuildResult with outcome BUILT or SKIPPED.

        Raises:
            BuildFailedError: If the build tool exits non-zero or cannot start.
        """
        if node.build_tool is None:
            logger.debug("%s has no makefile, skipping", node.name)
            return BuildResult(outcome=BuildOutcome.SKIPPED)

        if node.directory is None:
            logger.warning(
                "%s: no local checkout for %s, skipping", node.name, node.build_tool
            )
            return BuildResult(outcome=BuildOutcome.SKIPPED)

        if self.options.verbose:
            logger.warning("build: %s: %s", node.name, node.build_tool)

        steps = compose_build_steps(
            node.build_tool,
            make_program=self.options.make_program,
            clean=self.options.clean,
            test=self.options.test,
            force=self.options.force,
        )
        env = build_environment(self.options.prefix or prefix)
        logger.info("Working directory: %s", node.directory)

        started_at = datetime.now(timezone.utc)
        try:
            exit_code = run_steps(steps, node.directory, env, self.runner)
        except OSError as e:
            message = f"Failed to execute build for {node.name}: {e}"
            logger.error(message)
            raise BuildFailedError(
                message,
                package=node.name,
                code=EXECUTION_ERROR,
            ) from e
        finished_at = datetime.now(timezone.utc)

        if exit_code != 0:
            message = f"Build of {node.name} failed with exit code {exit_code}"
            logger.error("%s (in %s)", message, node.directory)
            raise BuildFailedError(message, exit_code=exit_code, package=node.name)

        duration = (finished_at - started_at).total_seconds()
        logger.debug("Built %s in %.1fs", node.name, duration)
        return BuildResult(
            outcome=BuildOutcome.BUILT,
            exit_code=exit_code,
            steps=steps,
            started_at=started_at,
            finished_at=finished_at,
        )


__all__ = [
    "BuildExecutor",
    "BuildResult",
    "CommandRunner",
    "build_environment",
    "compose_build_steps",
    "run_command",
    "run_steps",
]
