"""Configuration settings for clib_build.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CLEAN_TARGET = "clean"
DEFAULT_TEST_TARGET = "test"
DEFAULT_CONCURRENCY = 4


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the CLIB_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="CLIB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    output_dir: Path = Field(
        default=Path("./deps"),
        description="Directory dependencies are installed into",
    )

    # Operational modes
    offline: bool = Field(
        default=False,
        description="Offline mode - never fetch manifests for slugs",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Concurrency
    concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        ge=1,
        le=64,
        description="Maximum packages built in parallel per batch",
    )
    propagate_worker_errors: bool = Field(
        default=True,
        description="Fail a batch when any of its workers fails",
    )

    # Build tool
    make_program: str = Field(
        default="make",
        description="Build tool executable invoked for each makefile",
    )

    # Remote manifests
    registry_url: str = Field(
        default="https://raw.githubusercontent.com",
        description="Base URL manifests are fetched from for slugs",
    )
    fetch_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for manifest fetches (seconds)",
    )
    token: SecretStr | None = Field(
        default=None,
        description="Access token used to read private manifests",
    )


@dataclass(frozen=True)
class BuildOptions:
    """Immutable options for one orchestrator run.

    Attributes:
        output_dir: Absolute directory holding installed dependencies.
        prefix: Install prefix exported to the build tool as PREFIX.
        force: Force rebuild of every target (make -B).
        clean: Clean target run before building, or None.
        test: Target used instead of the default one, or None.
        dev: Also build development dependencies.
        concurrency: Worker-count limit per batch; 1 means sequential.
        verbose: Emit informational output.
        global_mode: Slug packages have no checkout under output_dir.
        skip_cache: Bypass the resolver's manifest cache.
        propagate_worker_errors: Re-raise worker failures after a batch joins.
        make_program: Build tool executable.
    """

    output_dir: Path
    prefix: Path | None = None
    force: bool = False
    clean: str | None = None
    test: str | None = None
    dev: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    verbose: bool = True
    global_mode: bool = False
    skip_cache: bool = False
    propagate_worker_errors: bool = True
    make_program: str = "make"

    def __post_init__(self) -> None:
        """Validate options after initialization."""
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "BuildOptions":
        """Freeze settings plus CLI overrides into run options.

        Args:
            settings: Loaded settings.
            **overrides: Field values that take precedence over settings.
                None values are ignored.

        Returns:
            BuildOptions with an absolute output directory.
        """
        options = cls(
            output_dir=settings.output_dir,
            concurrency=settings.concurrency,
            propagate_worker_errors=settings.propagate_worker_errors,
            make_program=settings.make_program,
        )
        options = replace(
            options, **{k: v for k, v in overrides.items() if v is not None}
        )
        return replace(options, output_dir=options.output_dir.resolve())


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "DEFAULT_CLEAN_TARGET",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_TEST_TARGET",
    "BuildOptions",
    "Settings",
    "get_settings",
    "print_settings_json",
]
