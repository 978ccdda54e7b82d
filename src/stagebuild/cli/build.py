"""
stagebuild build - Build every module of an analysed cache in priority stages.
"""

from pathlib import Path

import typer

from stagebuild.cli.session import CliSession, config_option, verbosity_option
from stagebuild.config.loader import resolve_max_workers
from stagebuild.core.actions import BuildSettings
from stagebuild.core.api import build as run_build
from stagebuild.exceptions import CacheIOError
from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.cli.build")


def build(
    cache_file: Path = typer.Argument(..., help="Cache file written by 'stagebuild analyze'"),
    build_path: Path | None = typer.Argument(None, help="Output directory for build results"),
    stop_on_failure: bool | None = typer.Option(
        None, "--stop-on-failure/--keep-going", help="Skip later stages after a failure"
    ),
    configuration: str | None = typer.Option(None, "--configuration", "-c", help="Build configuration (Debug, Release)"),
    platform: str | None = typer.Option(None, "--platform", help="Target platform"),
    workers: str | None = typer.Option(None, "--workers", "-j", help="Concurrent builds per stage ('auto' or a number)"),
    verbosity: int = verbosity_option(),
    config_path: Path | None = config_option(),
) -> None:
    """
    Build modules from the cache, lowest priority first.

    Prints '<succeeded> succeeded, <failed> failed, <skipped> skipped'.
    """
    session = CliSession(cache_file, verbosity, config_path)
    settings = BuildSettings.from_config(
        session.config,
        configuration=configuration,
        platform=platform,
        output_dir=str(build_path) if build_path else None,
    )

    max_workers = None
    if workers is not None:
        try:
            max_workers = resolve_max_workers(workers)
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--workers") from e

    try:
        summary = run_build(
            cache_file,
            config=session.config,
            channel=session.channel,
            settings=settings,
            stop_on_failure=stop_on_failure,
            max_workers=max_workers,
        )
    except CacheIOError as e:
        logger.error(str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(str(summary))
    if summary.failed:
        raise typer.Exit(1)
