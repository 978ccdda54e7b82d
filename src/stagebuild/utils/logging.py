"""
Logging for Stagebuild.

Every module logs through a child of the ``stagebuild`` logger. The CLI
decides where records go: a Rich console handler on stderr, a plain log
file next to the cache, both, or neither.
"""

import logging
import traceback
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "stagebuild"

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class FileFormatter(logging.Formatter):
    """Single-line records for the log file; tracebacks follow on their own lines."""

    def __init__(self) -> None:
        super().__init__(fmt=FILE_FORMAT, datefmt=FILE_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if record.exc_info and not record.exc_text:
            text = f"{text}\n{''.join(traceback.format_exception(*record.exc_info)).rstrip()}"
        return text


def level_from_name(level: str | int) -> int:
    """``"debug"``, ``"WARNING"`` or a numeric level; anything unknown means INFO."""
    if isinstance(level, int):
        return level
    value = logging.getLevelNamesMapping().get(str(level).strip().upper())
    return value if value is not None else logging.INFO


def _console_handler(level: int, console: Console | None, use_rich: bool) -> logging.Handler:
    if use_rich:
        return RichHandler(
            level=level,
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    return handler


def _file_handler(log_file: Path, file_mode: str) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode=file_mode, encoding="utf-8")
    handler.setFormatter(FileFormatter())
    return handler


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    file_mode: str = "a",
    console: Console | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Route ``stagebuild`` records to the console and/or a file.

    Handlers from a previous call are closed and replaced, so repeated CLI
    invocations in one process do not stack output.

    Args:
        level: Level name or number; filters both handlers
        log_file: Plain-text log file, created with its parent directory
        file_mode: 'a' appends to an existing log, 'w' truncates it
        console: Rich console for the console handler (default: stderr)
        console_enabled: False silences console logging entirely
        use_rich: False swaps the Rich handler for a bare StreamHandler

    Returns:
        The ``stagebuild`` logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    threshold = level_from_name(level)
    root.setLevel(threshold)
    if console_enabled:
        root.addHandler(_console_handler(threshold, console, use_rich))
    if log_file:
        root.addHandler(_file_handler(Path(log_file), file_mode))
    return root


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger in the ``stagebuild`` hierarchy, e.g. ``get_logger("stagebuild.resolver")``."""
    return logging.getLogger(name)
