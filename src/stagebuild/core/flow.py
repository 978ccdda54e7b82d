"""
Build flow and task tracking.

A BuildFlow represents one build run over a registry.
A BuildTask represents the build of a single module within that run.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, NamedTuple


class FlowStatus(StrEnum):
    """Build run status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"  # stop-on-failure halted later stages


class TaskStatus(StrEnum):
    """Per-module build status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class BuildSummary(NamedTuple):
    succeeded: int
    failed: int
    skipped: int

    def __str__(self) -> str:
        return f"{self.succeeded} succeeded, {self.failed} failed, {self.skipped} skipped"


@dataclass
class BuildTask:
    """Build of one module."""

    identity: str
    source_path: str
    priority: int
    task_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: TaskStatus = TaskStatus.PENDING
    started_at: float | None = None
    completed_at: float | None = None
    skipped_reason: str | None = None  # 'circular_reference', 'stopped', 'unresolved'
    error_message: str | None = None

    def start(self) -> None:
        self.status = TaskStatus.RUNNING
        self.started_at = time.time()

    def complete(self, success: bool) -> None:
        self.status = TaskStatus.SUCCEEDED if success else TaskStatus.FAILED
        self.completed_at = time.time()

    def skip(self, reason: str) -> None:
        self.status = TaskStatus.SKIPPED
        self.skipped_reason = reason
        self.completed_at = time.time()

    def get_duration(self) -> float | None:
        if self.started_at and self.completed_at:
            return self.completed_at - self.started_at
        return None


@dataclass
class BuildFlow:
    """
    One build run.

    Counters are updated under a lock since module builds may complete on
    worker threads.
    """

    flow_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: FlowStatus = FlowStatus.PENDING
    started_at: float | None = None
    completed_at: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    tasks: dict[str, BuildTask] = field(default_factory=dict)  # identity -> task
    stop_requested: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _finished: int = field(default=0, repr=False)

    def add_task(self, task: BuildTask) -> BuildTask:
        self.tasks[task.identity] = task
        return task

    def start(self) -> None:
        self.status = FlowStatus.RUNNING
        self.started_at = time.time()

    def record(self, task: BuildTask, success: bool, error_message: str | None = None) -> int:
        """Mark a task finished and return its 1-based completion index."""
        with self._lock:
            task.complete(success)
            task.error_message = error_message
            self._finished += 1
            return self._finished

    def skip_remaining(self, reason: str) -> list[BuildTask]:
        with self._lock:
            skipped = [t for t in self.tasks.values() if t.status == TaskStatus.PENDING]
            for task in skipped:
                task.skip(reason)
            return skipped

    def complete(self) -> None:
        summary = self.summary()
        if self.stop_requested:
            self.status = FlowStatus.STOPPED
        elif summary.failed:
            self.status = FlowStatus.FAILED
        else:
            self.status = FlowStatus.COMPLETED
        self.completed_at = time.time()

    def summary(self) -> BuildSummary:
        with self._lock:
            succeeded = sum(1 for t in self.tasks.values() if t.status == TaskStatus.SUCCEEDED)
            failed = sum(1 for t in self.tasks.values() if t.status == TaskStatus.FAILED)
        return BuildSummary(succeeded, failed, len(self.tasks) - succeeded - failed)

    def get_duration(self) -> float | None:
        if self.started_at and self.completed_at:
            return self.completed_at - self.started_at
        elif self.started_at:
            return time.time() - self.started_at
        return None
