"""Shared type definitions for clib_build.

This module contains dataclasses and enums shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_AUTHOR = "clibs"
DEFAULT_VERSION = "master"


class BuildOutcome(str, Enum):
    """Final outcome recorded for a package location."""

    BUILT = "built"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DependencyRef:
    """Reference to a dependency as declared in a manifest.

    Attributes:
        author: Repository owner (e.g., 'clibs').
        name: Package name, also the directory name under the output dir.
        version: Requested version or branch.
    """

    author: str
    name: str
    version: str = DEFAULT_VERSION

    @property
    def slug(self) -> str:
        """Return the canonical 'author/name@version' slug."""
        return f"{self.author}/{self.name}@{self.version}"

    def install_path(self, output_dir: Path) -> Path:
        """Return the directory this dependency is installed into."""
        return output_dir / self.name

    @classmethod
    def from_manifest_entry(cls, repo: str, version: str) -> "DependencyRef":
        """Create a reference from a manifest 'author/name': 'version' entry.

        Args:
            repo: Repository key, 'author/name' or bare 'name'.
            version: Version value; '*' or empty means the default branch.

        Returns:
            DependencyRef instance.
        """
        author, _, name = repo.rpartition("/")
        if not version or version == "*":
            version = DEFAULT_VERSION
        return cls(author=author or DEFAULT_AUTHOR, name=name, version=version)


@dataclass
class BuildSummary:
    """Summary of one orchestrator run."""

    built: int
    skipped: int
    entries: dict[str, BuildOutcome] = field(default_factory=dict)

    @property
    def message(self) -> str:
        """Human-readable summary line."""
        if self.built == 1:
            return "built 1 package"
        return f"built {self.built} packages"


__all__ = [
    "DEFAULT_AUTHOR",
    "DEFAULT_VERSION",
    "BuildOutcome",
    "BuildSummary",
    "DependencyRef",
]
