"""Package node resolution.

Turns a package directory or a slug into a PackageNode:

1. a directory is searched for clib.json, then package.json;
2. anything else (or a directory without a manifest) is tried as a slug
   and its manifest fetched remotely;
3. PackageNotFoundError is raised only when both are exhausted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from clib_build.errors import PackageNotFoundError
from clib_build.packages.io import (
    MANIFEST_NAMES,
    find_manifest,
    load_manifest,
    parse_manifest_data,
)
from clib_build.packages.slug import ManifestFetcher, parse_slug
from clib_build.types import DependencyRef

if TYPE_CHECKING:
    from clib_build.config import BuildOptions, Settings
    from clib_build.packages.schema import ManifestSchema

logger = logging.getLogger(__name__)


@dataclass
class PackageNode:
    """A resolved package.

    Attributes:
        name: Package name.
        directory: Package checkout, or None when there is none locally.
        build_tool: Makefile path relative to directory; None means
            nothing to build.
        dependencies: Dependencies in manifest order.
        development_dependencies: Development dependencies in manifest order.
        manifest_path: Manifest file the node was read from, if local.
        slug: Slug the node was resolved from, if remote.
        prefix: Install prefix declared by the manifest.
    """

    name: str
    directory: Path | None = None
    build_tool: str | None = None
    dependencies: list[DependencyRef] = field(default_factory=list)
    development_dependencies: list[DependencyRef] = field(default_factory=list)
    manifest_path: Path | None = None
    slug: str | None = None
    prefix: str | None = None

    @property
    def canonical_path(self) -> str:
        """Ledger key: absolute package directory, or the slug without one."""
        if self.directory is not None:
            return str(self.directory.resolve())
        return self.slug or self.name


class Resolver(Protocol):
    """Anything that can turn a path or slug into a PackageNode."""

    def resolve(self, target: str | Path) -> PackageNode:
        """Resolve a target or raise PackageNotFoundError."""
        ...


def node_from_manifest(
    manifest: ManifestSchema,
    directory: Path | None,
    manifest_path: Path | None = None,
    slug: str | None = None,
) -> PackageNode:
    """Build a PackageNode from a validated manifest."""
    return PackageNode(
        name=manifest.name or "",
        directory=directory,
        build_tool=manifest.makefile,
        dependencies=manifest.dependency_refs(),
        development_dependencies=manifest.development_refs(),
        manifest_path=manifest_path,
        slug=slug,
        prefix=manifest.prefix,
    )


class PackageResolver:
    """Resolves local package directories and remote slugs."""

    def __init__(
        self,
        output_dir: Path,
        fetcher: ManifestFetcher | None = None,
        global_mode: bool = False,
    ) -> None:
        self.output_dir = output_dir
        self.fetcher = fetcher or ManifestFetcher()
        self.global_mode = global_mode

    @classmethod
    def from_settings(
        cls, settings: Settings, options: BuildOptions
    ) -> PackageResolver:
        """Create a resolver configured from settings and run options."""
        fetcher = ManifestFetcher(
            base_url=settings.registry_url,
            timeout=settings.fetch_timeout,
            offline=settings.offline,
            skip_cache=options.skip_cache,
            token=settings.token.get_secret_value() if settings.token else None,
        )
        return cls(options.output_dir, fetcher, global_mode=options.global_mode)

    def resolve(self, target: str | Path) -> PackageNode:
        """Resolve a directory or slug into a PackageNode.

        Args:
            target: Package directory, manifest file, or slug.

        Returns:
            Resolved PackageNode.

        Raises:
            PackageNotFoundError: If no manifest and no slug resolution exist.
            ResolverError: If a manifest is invalid or the fetch fails.
        """
        path = Path(target)

        if path.is_file() and path.name in MANIFEST_NAMES:
            return self._resolve_manifest(path, path.parent)

        if path.is_dir():
            manifest_path = find_manifest(path)
            if manifest_path is not None:
                return self._resolve_manifest(manifest_path, path)
            logger.debug("No manifest in %s, trying as slug", path)

        return self.resolve_slug(str(target))

    def _resolve_manifest(self, manifest_path: Path, directory: Path) -> PackageNode:
        logger.debug("read %s", manifest_path)
        manifest = load_manifest(manifest_path)
        return node_from_manifest(manifest, directory, manifest_path=manifest_path)

    def resolve_slug(self, slug: str) -> PackageNode:
        """Resolve a slug by fetching its manifest.

        Raises:
            PackageNotFoundError: If the slug is malformed or unknown.
            ResolverError: If the fetch fails.
        """
        ref = parse_slug(slug)
        if ref is None:
            raise PackageNotFoundError(slug)

        data = self.fetcher.fetch(ref)
        manifest = parse_manifest_data(data, ref.slug)
        directory = None if self.global_mode else ref.install_path(self.output_dir)
        return node_from_manifest(manifest, directory, slug=ref.slug)

    def close(self) -> None:
        """Release network resources."""
        self.fetcher.close()


__all__ = [
    "PackageNode",
    "PackageResolver",
    "Resolver",
    "node_from_manifest",
]
