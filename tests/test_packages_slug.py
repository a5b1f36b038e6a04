"""Tests for packages/slug.py module.

Uses respx to mock HTTP requests.
"""

import httpx
import pytest
import respx

from clib_build.errors import PackageNotFoundError, ResolverError
from clib_build.packages.slug import (
    DEFAULT_REGISTRY_URL,
    ManifestFetcher,
    build_manifest_url,
    fetch_manifest,
    parse_slug,
)
from clib_build.types import DependencyRef

REF = DependencyRef("clibs", "list", "0.2.0")
CLIB_URL = f"{DEFAULT_REGISTRY_URL}/clibs/list/0.2.0/clib.json"
PACKAGE_URL = f"{DEFAULT_REGISTRY_URL}/clibs/list/0.2.0/package.json"


class TestParseSlug:
    """Tests for parse_slug."""

    def test_full_slug(self):
        assert parse_slug("clibs/list@0.2.0") == REF

    def test_without_version(self):
        ref = parse_slug("clibs/list")
        assert ref == DependencyRef("clibs", "list", "master")

    def test_bare_name(self):
        ref = parse_slug("list")
        assert ref is not None
        assert ref.author == "clibs"
        assert ref.name == "list"

    def test_star_version(self):
        ref = parse_slug("clibs/list@*")
        assert ref is not None
        assert ref.version == "master"

    def test_absolute_path_is_not_a_slug(self):
        """Filesystem paths should never be fetched as slugs."""
        assert parse_slug("/home/user/deps/list") is None

    def test_nested_path_is_not_a_slug(self):
        assert parse_slug("a/b/c") is None


class TestBuildManifestUrl:
    """Tests for build_manifest_url."""

    def test_url(self):
        assert build_manifest_url(REF, "clib.json") == CLIB_URL

    def test_strips_trailing_slash(self):
        url = build_manifest_url(REF, "clib.json", "https://example.com/")
        assert url == "https://example.com/clibs/list/0.2.0/clib.json"


class TestFetchManifest:
    """Tests for fetch_manifest."""

    @respx.mock
    def test_clib_json(self):
        """Should return clib.json content without trying package.json."""
        clib_route = respx.get(CLIB_URL).mock(
            return_value=httpx.Response(200, json={"name": "list"})
        )
        package_route = respx.get(PACKAGE_URL).mock(
            return_value=httpx.Response(200, json={"name": "wrong"})
        )

        with httpx.Client() as client:
            data = fetch_manifest(client, REF)

        assert data == {"name": "list"}
        assert clib_route.called
        assert not package_route.called

    @respx.mock
    def test_token_sent_as_authorization_header(self):
        route = respx.get(CLIB_URL).mock(
            return_value=httpx.Response(200, json={"name": "list"})
        )

        with httpx.Client() as client:
            fetch_manifest(client, REF, token="s3cret")

        assert route.calls.last.request.headers["Authorization"] == "token s3cret"

    @respx.mock
    def test_no_token_no_authorization_header(self):
        route = respx.get(CLIB_URL).mock(
            return_value=httpx.Response(200, json={"name": "list"})
        )

        with httpx.Client() as client:
            fetch_manifest(client, REF)

        assert "Authorization" not in route.calls.last.request.headers

    @respx.mock
    def test_falls_back_to_package_json(self):
        respx.get(CLIB_URL).mock(return_value=httpx.Response(404))
        respx.get(PACKAGE_URL).mock(
            return_value=httpx.Response(200, json={"name": "list"})
        )

        with httpx.Client() as client:
            data = fetch_manifest(client, REF)

        assert data["name"] == "list"

    @respx.mock
    def test_not_found(self):
        """404 for every manifest name should be NotFound."""
        respx.get(CLIB_URL).mock(return_value=httpx.Response(404))
        respx.get(PACKAGE_URL).mock(return_value=httpx.Response(404))

        with httpx.Client() as client, pytest.raises(PackageNotFoundError) as exc_info:
            fetch_manifest(client, REF)

        assert exc_info.value.target == "clibs/list@0.2.0"

    @respx.mock
    def test_http_error(self):
        respx.get(CLIB_URL).mock(return_value=httpx.Response(500))

        with httpx.Client() as client, pytest.raises(ResolverError) as exc_info:
            fetch_manifest(client, REF)

        assert exc_info.value.code == "http_error"

    @respx.mock
    def test_timeout(self):
        respx.get(CLIB_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        with httpx.Client() as client, pytest.raises(ResolverError) as exc_info:
            fetch_manifest(client, REF)

        assert exc_info.value.code == "timeout"

    @respx.mock
    def test_network_error(self):
        respx.get(CLIB_URL).mock(side_effect=httpx.ConnectError("refused"))

        with httpx.Client() as client, pytest.raises(ResolverError) as exc_info:
            fetch_manifest(client, REF)

        assert exc_info.value.code == "network_error"

    @respx.mock
    def test_invalid_json(self):
        respx.get(CLIB_URL).mock(return_value=httpx.Response(200, text="{oops"))

        with httpx.Client() as client, pytest.raises(ResolverError) as exc_info:
            fetch_manifest(client, REF)

        assert exc_info.value.code == "invalid_manifest"


class TestManifestFetcher:
    """Tests for ManifestFetcher caching and offline mode."""

    @respx.mock
    def test_caches_results(self):
        route = respx.get(CLIB_URL).mock(
            return_value=httpx.Response(200, json={"name": "list"})
        )

        fetcher = ManifestFetcher()
        try:
            fetcher.fetch(REF)
            fetcher.fetch(REF)
        finally:
            fetcher.close()

        assert route.call_count == 1

    @respx.mock
    def test_skip_cache(self):
        route = respx.get(CLIB_URL).mock(
            return_value=httpx.Response(200, json={"name": "list"})
        )

        fetcher = ManifestFetcher(skip_cache=True)
        try:
            fetcher.fetch(REF)
            fetcher.fetch(REF)
        finally:
            fetcher.close()

        assert route.call_count == 2

    @respx.mock
    def test_offline_makes_no_request(self):
        route = respx.get(CLIB_URL).mock(
            return_value=httpx.Response(200, json={"name": "list"})
        )

        fetcher = ManifestFetcher(offline=True)
        with pytest.raises(PackageNotFoundError):
            fetcher.fetch(REF)

        assert not route.called

    @respx.mock
    def test_fetcher_passes_token(self):
        route = respx.get(CLIB_URL).mock(
            return_value=httpx.Response(200, json={"name": "list"})
        )

        fetcher = ManifestFetcher(token="s3cret")
        try:
            fetcher.fetch(REF)
        finally:
            fetcher.close()

        assert route.calls.last.request.headers["Authorization"] == "token s3cret"

    def test_close_keeps_injected_client(self):
        """A client passed in is owned by the caller."""
        client = httpx.Client()
        fetcher = ManifestFetcher(client=client)
        fetcher.close()
        assert not client.is_closed
        client.close()
