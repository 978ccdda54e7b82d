"""
stagebuild show - Inspect an analysed cache.
"""

from pathlib import Path

import typer
from rich.console import Console

from stagebuild.core.cache import CacheStore
from stagebuild.core.context import RunContext
from stagebuild.core.scheduler import BuildScheduler
from stagebuild.exceptions import CacheIOError
from stagebuild.utils.display import depth_table, reference_depth, tree_view

console = Console()


def show(
    cache_file: Path = typer.Argument(..., help="Cache file written by 'stagebuild analyze'"),
    tree: bool = typer.Option(False, "--tree", help="Show the reference tree instead of the depth list"),
    stages: bool = typer.Option(False, "--stages", help="Show the build stages a build would run"),
    plain: bool = typer.Option(False, "--plain", help="Plain text instead of a table"),
) -> None:
    """Print the reference depth, tree or build stages stored in a cache."""
    try:
        registry = CacheStore(cache_file).load()
    except CacheIOError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if tree:
        typer.echo(tree_view(registry), nl=False)
    elif stages:
        # Planning only; no build action is invoked
        scheduler = BuildScheduler(RunContext(registry=registry), action=lambda module, settings: False, max_workers=1)
        planned, excluded = scheduler.plan()
        for priority, members in planned:
            typer.echo(f"Stage {priority}: {', '.join(m.identity for m in members)}")
        if excluded:
            typer.echo(f"Excluded: {', '.join(m.identity for m in excluded)}")
    elif plain:
        typer.echo(reference_depth(registry), nl=False)
    else:
        console.print(depth_table(registry))
