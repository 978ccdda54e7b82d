"""
stagebuild analyze - Discover projects, resolve build priorities, save the cache.
"""

from pathlib import Path

import typer

from stagebuild.cli.session import CliSession, config_option, verbosity_option
from stagebuild.core.api import analyze as run_analysis
from stagebuild.exceptions import CacheIOError
from stagebuild.utils.display import depth_table, reference_depth
from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.cli.analyze")


def analyze(
    cache_file: Path = typer.Argument(..., help="Cache file to write the analysed graph to"),
    inputs: list[str] = typer.Argument(
        ..., help="Project files, solution files or directories (';'-separated lists accepted)"
    ),
    verbosity: int = verbosity_option(),
    config_path: Path | None = config_option(),
) -> None:
    """
    Analyse inputs and save build priorities.

    Examples:
        stagebuild analyze cache.json ./src
        stagebuild analyze cache.json "App.sln;tools/Tool.csproj" -v 1
    """
    session = CliSession(cache_file, verbosity, config_path)

    try:
        registry, missing = run_analysis(inputs, cache_file, config=session.config, channel=session.channel)
    except CacheIOError as e:
        logger.error(str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if session.to_file:
        session.write_report(reference_depth(registry))
    if session.to_console:
        session.console.print()
        session.console.print(depth_table(registry))

    circular = sum(1 for m in registry if m.is_circular)
    typer.echo(f"{len(registry)} modules analysed, {circular} circular, {len(session.channel.errors)} errors")

    if missing:
        typer.echo(f"Error: input not found: {', '.join(missing)}", err=True)
        raise typer.Exit(1)
