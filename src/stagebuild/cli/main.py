"""
Main CLI entry point.
"""

import typer

from stagebuild import __version__
from stagebuild.cli import analyze, build, show


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"stagebuild version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="stagebuild",
    help="Stagebuild - analyse project dependencies and build them in priority stages",
    add_completion=False,
)

app.command(name="analyze")(analyze.analyze)
app.command(name="build")(build.build)
app.command(name="show")(show.show)


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    Stagebuild - analyse project dependencies and build them in priority stages.

    1. 'stagebuild analyze CACHE INPUTS...' sets build priorities and saves them.
    2. 'stagebuild build CACHE [BUILD_PATH]' builds from the saved cache.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
