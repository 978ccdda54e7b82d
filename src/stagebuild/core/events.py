"""
Status and error channel.

Components report progress and non-fatal errors here instead of printing.
The CLI (or any caller) subscribes observers to render or log them.

Event kinds:
- progress: phase (discovering / resolving / building), module, 1-based index, total
- error: the exception that was recovered from
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.events")


class Phase(StrEnum):
    """Run phase a progress event belongs to."""

    DISCOVERING = "discovering"
    RESOLVING = "resolving"
    BUILDING = "building"


class BuildOutcome(StrEnum):
    """Per-module build result."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ProgressEvent:
    phase: Phase
    module: str
    index: int
    total: int
    outcome: BuildOutcome | None = None

    def describe(self) -> str:
        text = f"[{self.phase}] {self.module} ({self.index} of {self.total})"
        if self.outcome is not None:
            text += f": {self.outcome}"
        return text


@dataclass(frozen=True)
class ErrorEvent:
    error: Exception
    module: str | None = None

    @property
    def message(self) -> str:
        return str(self.error)


ProgressCallback = Callable[[ProgressEvent], None]
ErrorCallback = Callable[[ErrorEvent], None]


class StatusChannel:
    """
    Fan-out of progress and error events to subscribed observers.

    Thread-safe: build workers may report from pool threads. Reported errors
    are also kept so callers can inspect them after a run.
    """

    def __init__(self) -> None:
        self._progress_observers: list[ProgressCallback] = []
        self._error_observers: list[ErrorCallback] = []
        self._errors: list[ErrorEvent] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        with self._lock:
            if on_progress is not None:
                self._progress_observers.append(on_progress)
            if on_error is not None:
                self._error_observers.append(on_error)

    def progress(
        self,
        phase: Phase,
        module: str,
        index: int,
        total: int,
        outcome: BuildOutcome | None = None,
    ) -> ProgressEvent:
        event = ProgressEvent(phase=phase, module=module, index=index, total=total, outcome=outcome)
        with self._lock:
            observers = list(self._progress_observers)
        for observer in observers:
            observer(event)
        return event

    def error(self, error: Exception, module: str | None = None) -> ErrorEvent:
        event = ErrorEvent(error=error, module=module)
        with self._lock:
            self._errors.append(event)
            observers = list(self._error_observers)
        for observer in observers:
            observer(event)
        return event

    @property
    def errors(self) -> list[ErrorEvent]:
        with self._lock:
            return list(self._errors)

    def errors_of(self, error_type: type[Exception]) -> list[ErrorEvent]:
        return [e for e in self.errors if isinstance(e.error, error_type)]


class LoggingObserver:
    """Forward channel events to the stagebuild logger."""

    def __init__(self, channel_logger=None):
        self.logger = channel_logger or logger

    def on_progress(self, event: ProgressEvent) -> None:
        if event.outcome == BuildOutcome.FAILED:
            self.logger.warning(event.describe())
        else:
            self.logger.debug(event.describe())

    def on_error(self, event: ErrorEvent) -> None:
        self.logger.error(event.message)

    def attach(self, channel: StatusChannel) -> "LoggingObserver":
        channel.subscribe(on_progress=self.on_progress, on_error=self.on_error)
        return self
