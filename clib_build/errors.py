"""Error definitions for clib_build.

Every error carries a stable ``code`` for programmatic handling and an
``exit_code`` used by the CLI as the process status.
"""

import errno

# Error code constants
NOT_FOUND = "not_found"
ALLOCATION_FAILURE = "allocation_failure"
BUILD_FAILED = "build_failed"
EXECUTION_ERROR = "execution_error"
RESOLVER_ERROR = "resolver_error"
INVALID_MANIFEST = "invalid_manifest"
HTTP_ERROR = "http_error"
TIMEOUT = "timeout"
NETWORK_ERROR = "network_error"
LEDGER_ERROR = "ledger_error"
MANIFEST_WRITE_ERROR = "manifest_write_error"


class ClibBuildError(Exception):
    """Base error for clib_build operations."""

    exit_code: int = 1

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


class PackageNotFoundError(ClibBuildError):
    """Raised when no manifest and no slug resolution exists for a target."""

    exit_code = -errno.ENOENT

    def __init__(self, target: str, code: str = NOT_FOUND) -> None:
        super().__init__(f"Package not found: {target}", code)
        self.target = target


class AllocationFailureError(ClibBuildError):
    """Raised when resources (memory, threads) are exhausted."""

    exit_code = -errno.ENOMEM

    def __init__(self, message: str, code: str = ALLOCATION_FAILURE) -> None:
        super().__init__(message, code)


class BuildFailedError(ClibBuildError):
    """Raised when a package's build command exits non-zero."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        package: str | None = None,
        code: str = BUILD_FAILED,
    ) -> None:
        super().__init__(message, code)
        self.package = package
        # Spawn failures have no process status; report a generic failure.
        self.exit_code = exit_code if exit_code else 1


class ResolverError(ClibBuildError):
    """Raised when the resolver or fetcher fails for reasons other than absence."""

    def __init__(self, message: str, code: str = RESOLVER_ERROR) -> None:
        super().__init__(message, code)


class LedgerError(ClibBuildError):
    """Raised on an invalid ledger state transition."""

    def __init__(self, message: str, code: str = LEDGER_ERROR) -> None:
        super().__init__(message, code)


__all__ = [
    "ALLOCATION_FAILURE",
    "BUILD_FAILED",
    "EXECUTION_ERROR",
    "HTTP_ERROR",
    "INVALID_MANIFEST",
    "LEDGER_ERROR",
    "MANIFEST_WRITE_ERROR",
    "NETWORK_ERROR",
    "NOT_FOUND",
    "RESOLVER_ERROR",
    "TIMEOUT",
    "AllocationFailureError",
    "BuildFailedError",
    "ClibBuildError",
    "LedgerError",
    "PackageNotFoundError",
    "ResolverError",
]
