"""Slug parsing and remote manifest fetch.

This module handles:
- Parsing 'author/name@version' slugs
- URL construction for remote manifests
- Fetching manifests over HTTP with a thread-safe in-process cache
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any

import httpx

from clib_build.errors import (
    HTTP_ERROR,
    INVALID_MANIFEST,
    NETWORK_ERROR,
    TIMEOUT,
    PackageNotFoundError,
    ResolverError,
)
from clib_build.packages.io import MANIFEST_NAMES
from clib_build.types import DEFAULT_AUTHOR, DEFAULT_VERSION, DependencyRef

logger = logging.getLogger(__name__)

# Base URL manifests are fetched from
DEFAULT_REGISTRY_URL = "https://raw.githubusercontent.com"

# Timeout for manifest requests (seconds)
FETCH_TIMEOUT = 30.0

SLUG_PATTERN = re.compile(
    r"^(?:(?P<author>[A-Za-z0-9_.\-]+)/)?(?P<name>[A-Za-z0-9_.\-]+)"
    r"(?:@(?P<version>[^\s@]+))?$"
)


def parse_slug(slug: str) -> DependencyRef | None:
    """Parse a slug into a dependency reference.

    Args:
        slug: 'author/name@version', 'author/name' or 'name'.

    Returns:
        DependencyRef, or None if the string is not slug-shaped.
    """
    match = SLUG_PATTERN.match(slug.strip())
    if match is None:
        return None
    version = match.group("version")
    if not version or version == "*":
        version = DEFAULT_VERSION
    return DependencyRef(
        author=match.group("author") or DEFAULT_AUTHOR,
        name=match.group("name"),
        version=version,
    )


def build_manifest_url(
    ref: DependencyRef,
    manifest_name: str,
    base_url: str = DEFAULT_REGISTRY_URL,
) -> str:
    """Build the URL of a manifest file for a dependency reference."""
    return f"{base_url.rstrip('/')}/{ref.author}/{ref.name}/{ref.version}/{manifest_name}"


def fetch_manifest(
    client: httpx.Client,
    ref: DependencyRef,
    base_url: str = DEFAULT_REGISTRY_URL,
    timeout: float = FETCH_TIMEOUT,
    token: str | None = None,
) -> dict[str, Any]:
    """Fetch the manifest of a slug, trying each manifest name in order.

    Args:
        client: HTTPX client instance.
        ref: Dependency reference to fetch.
        base_url: Registry base URL.
        timeout: Request timeout in seconds.
        token: Access token for private content, sent as an
            Authorization header.

    Returns:
        Decoded manifest content.

    Raises:
        PackageNotFoundError: If no manifest exists for the slug.
        ResolverError: If the fetch fails for any other reason.
    """
    headers = {"Authorization": f"token {token}"} if token else None
    for manifest_name in MANIFEST_NAMES:
        url = build_manifest_url(ref, manifest_name, base_url)
        logger.debug("Fetching manifest from %s", url)

        try:
            response = client.get(url, timeout=timeout, headers=headers)
            if response.status_code == httpx.codes.NOT_FOUND:
                continue
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            raise ResolverError(
                f"HTTP error fetching {url}: {e.response.status_code}",
                code=HTTP_ERROR,
            ) from e
        except httpx.TimeoutException as e:
            raise ResolverError(
                f"Timeout fetching {url}",
                code=TIMEOUT,
            ) from e
        except httpx.RequestError as e:
            raise ResolverError(
                f"Network error fetching {url}: {e}",
                code=NETWORK_ERROR,
            ) from e
        except ValueError as e:
            raise ResolverError(
                f"Invalid JSON in {url}",
                code=INVALID_MANIFEST,
            ) from e

        if not isinstance(data, dict):
            raise ResolverError(
                f"Expected a JSON object from {url}, got {type(data).__name__}",
                code=INVALID_MANIFEST,
            )
        logger.info("Resolved %s from %s", ref.slug, url)
        return data

    raise PackageNotFoundError(ref.slug)


class ManifestFetcher:
    """Fetches slug manifests, memoizing results for the life of the run.

    The cache is shared by all workers and guarded by a lock. A slug
    that resolves to nothing is not cached.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        base_url: str = DEFAULT_REGISTRY_URL,
        timeout: float = FETCH_TIMEOUT,
        offline: bool = False,
        skip_cache: bool = False,
        token: str | None = None,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self.base_url = base_url
        self.timeout = timeout
        self.offline = offline
        self.skip_cache = skip_cache
        self.token = token
        self._cache: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(follow_redirects=True)
            return self._client

    def fetch(self, ref: DependencyRef) -> dict[str, Any]:
        """Return the manifest for a reference, from cache when allowed.

        Raises:
            PackageNotFoundError: If offline or no manifest exists.
            ResolverError: If the fetch fails.
        """
        if self.offline:
            logger.debug("Offline mode, not fetching %s", ref.slug)
            raise PackageNotFoundError(ref.slug)

        if not self.skip_cache:
            with self._lock:
                cached = self._cache.get(ref.slug)
            if cached is not None:
                logger.debug("Manifest cache hit for %s", ref.slug)
                return cached

        data = fetch_manifest(
            self._get_client(), ref, self.base_url, self.timeout, token=self.token
        )

        if not self.skip_cache:
            with self._lock:
                self._cache.setdefault(ref.slug, data)
        return data

    def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        with self._lock:
            if self._owns_client and self._client is not None:
                self._client.close()
                self._client = None


__all__ = [
    "DEFAULT_REGISTRY_URL",
    "FETCH_TIMEOUT",
    "SLUG_PATTERN",
    "ManifestFetcher",
    "build_manifest_url",
    "fetch_manifest",
    "parse_slug",
]
