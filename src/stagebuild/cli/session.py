"""
Shared CLI setup: configuration, verbosity, logging and output files.

Verbosity flags (combinable):
    0  quiet
    1  console - status lines and reports on the terminal
    2  file    - log file, error list and reports next to the cache file
    3  both (default)
"""

from __future__ import annotations

from enum import IntFlag
from pathlib import Path

import typer
from rich.console import Console

from stagebuild.config.loader import Config, load_config
from stagebuild.core.events import ErrorEvent, LoggingObserver, StatusChannel
from stagebuild.exceptions import ConfigurationError
from stagebuild.utils.display import ConsoleReporter
from stagebuild.utils.logging import setup_logging

LOG_FILENAME = "stagebuild.log"
ERRORS_FILENAME = "errors.txt"
REPORT_FILENAME = "reference-depth.txt"


class Verbosity(IntFlag):
    QUIET = 0
    CONSOLE = 1
    FILE = 2


DEFAULT_VERBOSITY = int(Verbosity.CONSOLE | Verbosity.FILE)


class CliSession:
    """Everything one CLI invocation needs before handing off to the core."""

    def __init__(self, cache_file: Path, verbosity: int, config_path: Path | None = None):
        self.cache_file = Path(cache_file)
        self.verbosity = Verbosity(verbosity)
        self.output_dir = self.cache_file.resolve().parent
        self.console = Console()
        self.config = self._load_config(config_path)
        self.channel = StatusChannel()

        log_file = None
        if self.to_file:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            log_file = self.output_dir / LOG_FILENAME
            # Each run starts with fresh output files
            for name in (LOG_FILENAME, ERRORS_FILENAME, REPORT_FILENAME):
                (self.output_dir / name).unlink(missing_ok=True)
            self.channel.subscribe(on_error=self._append_error)

        setup_logging(
            level=self.config.get("logging.level", "INFO"),
            log_file=log_file or self.config.get("logging.file"),
            console=Console(stderr=True),
            console_enabled=self.to_console,
        )
        LoggingObserver().attach(self.channel)
        if self.to_console:
            reporter = ConsoleReporter(self.console)
            self.channel.subscribe(on_progress=reporter.on_progress, on_error=reporter.on_error)

    @property
    def to_console(self) -> bool:
        return bool(self.verbosity & Verbosity.CONSOLE)

    @property
    def to_file(self) -> bool:
        return bool(self.verbosity & Verbosity.FILE)

    def write_report(self, text: str, filename: str = REPORT_FILENAME) -> Path:
        path = self.output_dir / filename
        path.write_text(text, encoding="utf-8")
        return path

    def _append_error(self, event: ErrorEvent) -> None:
        with open(self.output_dir / ERRORS_FILENAME, "a", encoding="utf-8") as f:
            f.write(f"{type(event.error).__name__}: {event.message}\n")

    @staticmethod
    def _load_config(config_path: Path | None) -> Config:
        try:
            return load_config(config_path)
        except ConfigurationError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e


def verbosity_option() -> int:
    return typer.Option(
        DEFAULT_VERBOSITY,
        "--verbosity",
        "-v",
        min=0,
        max=3,
        help="0 quiet, 1 console, 2 file, 3 console and file",
    )


def config_option() -> Path | None:
    return typer.Option(None, "--config", help="Path to stagebuild.yaml (default: ./stagebuild.yaml if present)")
