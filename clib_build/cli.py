"""Thin CLI wrapper for clib_build.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.

``build`` is the default command: ``clib-build [options] [name ...]`` is
the same as ``clib-build build [options] [name ...]``.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import SecretStr
from rich.console import Console
from typer.core import TyperGroup

from clib_build import __version__
from clib_build.config import (
    DEFAULT_CLEAN_TARGET,
    DEFAULT_TEST_TARGET,
    BuildOptions,
    get_settings,
    print_settings_json,
)


class DefaultCommandGroup(TyperGroup):
    """Command group that runs ``build`` when no subcommand is named."""

    default_command = "build"

    def parse_args(self, ctx: typer.Context, args: list[str]) -> list[str]:
        group_options = {
            opt
            for param in self.get_params(ctx)
            for opt in (*param.opts, *param.secondary_opts)
        }
        if not args or (args[0] not in self.commands and args[0] not in group_options):
            args = [self.default_command, *args]
        return super().parse_args(ctx, args)


app = typer.Typer(
    name="clib-build",
    help="clib-build - build clib packages and their dependencies",
    cls=DefaultCommandGroup,
)
console = Console()


def configure_logging(level: str) -> None:
    """Configure process-wide logging once per invocation."""
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("clib_build").setLevel(level)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"clib-build version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """clib-build - build clib packages and their dependencies."""


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Output directory:    {settings.output_dir}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Offline mode:        {settings.offline}")
        console.print(f"  Log level:           {settings.log_level}")
        console.print(f"  Build tool:          {settings.make_program}")
        console.print()
        console.print("[bold]Concurrency:[/bold]")
        console.print(f"  Workers per batch:   {settings.concurrency}")
        console.print(f"  Propagate failures:  {settings.propagate_worker_errors}")
        console.print()
        console.print("[bold]Remote manifests:[/bold]")
        console.print(f"  Registry URL:        {settings.registry_url}")
        console.print(f"  Fetch timeout (s):   {settings.fetch_timeout}")
        console.print(f"  Access token:        {'set' if settings.token else 'unset'}")


@app.command()
def build(
    targets: Annotated[
        list[str] | None,
        typer.Argument(help="Package directories or slugs (default: current directory)"),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Change the output directory [deps]"),
    ] = None,
    prefix: Annotated[
        Path | None,
        typer.Option(
            "--prefix", "-P", help="Change the prefix directory (usually /usr/local)"
        ),
    ] = None,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Disable verbose output"),
    ] = False,
    global_mode: Annotated[
        bool,
        typer.Option("--global", "-g", help="Use global target"),
    ] = False,
    clean: Annotated[
        bool,
        typer.Option("--clean", "-C", help="Clean target before building"),
    ] = False,
    clean_target: Annotated[
        str,
        typer.Option("--clean-target", help="Target used by --clean"),
    ] = DEFAULT_CLEAN_TARGET,
    test: Annotated[
        bool,
        typer.Option("--test", "-T", help="Test target instead of building"),
    ] = False,
    test_target: Annotated[
        str,
        typer.Option("--test-target", help="Target used by --test"),
    ] = DEFAULT_TEST_TARGET,
    dev: Annotated[
        bool,
        typer.Option("--dev", "-d", help="Build development dependencies"),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Force rebuild of every target"),
    ] = False,
    skip_cache: Annotated[
        bool,
        typer.Option("--skip-cache", "-c", help="Skip cache when resolving"),
    ] = False,
    concurrency: Annotated[
        int | None,
        typer.Option(
            "--concurrency", "-j", min=1, help="Packages built in parallel [4]"
        ),
    ] = None,
    token: Annotated[
        str | None,
        typer.Option("--token", "-t", help="Access token used to read private content"),
    ] = None,
) -> None:
    """Build packages and their dependencies.

    Each package's makefile runs at most once per invocation, no matter how
    many packages depend on it. Dependencies are built in batches of
    --concurrency packages; use -j 1 to build one at a time.
    """
    from clib_build.builds.orchestrator import Orchestrator
    from clib_build.errors import ClibBuildError
    from clib_build.packages.resolver import PackageResolver

    settings = get_settings()
    if token:
        settings = settings.model_copy(update={"token": SecretStr(token)})
    configure_logging("WARNING" if quiet else settings.log_level)

    options = BuildOptions.from_settings(
        settings,
        output_dir=out,
        prefix=prefix.resolve() if prefix else None,
        force=force,
        clean=clean_target if clean else None,
        test=test_target if test else None,
        dev=dev,
        concurrency=concurrency,
        verbose=not quiet,
        global_mode=global_mode,
        skip_cache=skip_cache,
    )

    resolver = PackageResolver.from_settings(settings, options)
    orchestrator = Orchestrator(options, resolver)
    try:
        orchestrator.build_targets(targets or [])
    except ClibBuildError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=e.exit_code) from None
    finally:
        resolver.close()

    if options.verbose:
        summary = orchestrator.summary()
        if summary.built > 0:
            console.print()
        console.print(f"[green]{summary.message}[/green]")


@app.command()
def save(
    slugs: Annotated[
        list[str],
        typer.Argument(help="Dependencies to record, as author/name@version"),
    ],
    dev: Annotated[
        bool,
        typer.Option("--save-dev", "-D", help="Save as development dependencies"),
    ] = False,
    directory: Annotated[
        Path,
        typer.Option("--dir", help="Package directory holding the manifest"),
    ] = Path("."),
) -> None:
    """Save dependencies in clib.json or package.json.

    Entries are written to the first manifest that can be updated, in
    lookup order. Nothing is fetched or built.
    """
    from clib_build.errors import ClibBuildError, PackageNotFoundError
    from clib_build.packages.io import (
        DEPENDENCIES_SECTION,
        DEVELOPMENT_SECTION,
        write_dependency,
    )
    from clib_build.packages.slug import parse_slug

    section = DEVELOPMENT_SECTION if dev else DEPENDENCIES_SECTION
    try:
        for slug in slugs:
            ref = parse_slug(slug)
            if ref is None:
                raise PackageNotFoundError(slug)
            path = write_dependency(
                directory, f"{ref.author}/{ref.name}", ref.version, section
            )
            console.print(f"[green]saved {ref.slug} in {path.name}[/green]")
    except ClibBuildError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=e.exit_code) from None
