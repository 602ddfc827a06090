"""Task domain models.

All types are Pydantic BaseModel subclasses.  On disk the documents keep
the camelCase keys of the established ``tasks.json`` layout (``currentTask``,
``startTime``, ``sessionId`` ...) via field aliases; attribute access in
Python is snake_case and both spellings are accepted on input.

Classes
-------
- TaskStatus   — enum for task lifecycle states
- TaskUpdate   — one progress report appended to a task
- SessionInfo  — snapshot of the window a bound task was created for
- Task         — a unit of tracked effort
- TrackerData  — the persisted document: current task plus history
"""
from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from warp_task_tracker.tasks.errors import ConflictError, check_percentage


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_task_id(prefix: str | None = None) -> str:
    """Return a unique task id that sorts by creation time.

    The id is the epoch time in milliseconds (zero padded) followed by a
    short random suffix.  Session-bound tasks carry the session id as a
    prefix, e.g. ``warp_42_01718000000000-3fa2c1``.
    """
    millis = time.time_ns() // 1_000_000
    stem = f"{millis:013d}-{uuid4().hex[:6]}"
    return f"{prefix}_{stem}" if prefix else stem


class TaskStatus(str, Enum):
    """Lifecycle states for a tracked task."""

    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self is not TaskStatus.IN_PROGRESS


class TaskUpdate(BaseModel):
    """A single progress report.

    Parameters
    ----------
    timestamp:
        When the update was recorded (UTC).
    progress:
        The percentage reported, 0–100.
    message:
        Optional free-text note.
    """

    timestamp: datetime = Field(default_factory=utcnow)
    progress: int = Field(ge=0, le=100)
    message: str = ""


class SessionInfo(BaseModel):
    """Details of the terminal window a bound task was created for."""

    window_id: int | None = Field(default=None, alias="windowId")
    project_name: str = Field(default="", alias="projectName")
    working_dir: str = Field(default="", alias="workingDir")
    title: str = ""

    model_config = {"populate_by_name": True}


class Task(BaseModel):
    """A unit of tracked effort.

    Parameters
    ----------
    id:
        Opaque unique identifier, sortable by creation time.
    name:
        Non-empty display name.
    description:
        Optional longer description.
    start_time:
        When the task was created (UTC).
    end_time:
        When the task reached a terminal state; ``None`` while active.
    progress:
        Last reported percentage, 0–100.
    status:
        Current lifecycle state.
    updates:
        Append-only list of progress reports.
    bound_session_id:
        Session this task was auto-created for; ``None`` for manual tasks.
    session_info:
        Window details captured when the bound task was created.
    completion_message:
        Message supplied when the task was completed.
    """

    id: str = Field(default_factory=new_task_id)
    name: str
    description: str = ""
    start_time: datetime = Field(default_factory=utcnow, alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    progress: int = Field(default=0, ge=0, le=100)
    status: TaskStatus = TaskStatus.IN_PROGRESS
    updates: list[TaskUpdate] = Field(default_factory=list)
    bound_session_id: str | None = Field(default=None, alias="sessionId")
    session_info: SessionInfo | None = Field(default=None, alias="sessionInfo")
    completion_message: str = Field(default="", alias="completionMessage")

    model_config = {"populate_by_name": True}

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Task name must not be empty.")
        return value

    @model_validator(mode="after")
    def _terminal_state_consistent(self) -> "Task":
        if self.status.is_terminal and self.end_time is None:
            raise ValueError(f"A {self.status.value} task must have an end time.")
        if self.status is TaskStatus.COMPLETED and self.progress != 100:
            raise ValueError("A completed task must have progress 100.")
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.status is TaskStatus.IN_PROGRESS

    @property
    def is_bound(self) -> bool:
        return self.bound_session_id is not None

    def duration(self, now: datetime | None = None) -> timedelta:
        """Return elapsed time from start to end (or to ``now`` while active)."""
        end = self.end_time or now or utcnow()
        return max(end - self.start_time, timedelta(0))

    def recent_updates(self, count: int = 3) -> list[TaskUpdate]:
        return self.updates[-count:] if count > 0 else []

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _require_active(self) -> None:
        if not self.is_active:
            raise ConflictError(
                f"Task {self.name!r} is already {self.status.value}.", task=self
            )

    def record_update(
        self, percentage: int, message: str = "", now: datetime | None = None
    ) -> int:
        """Append a progress report and overwrite ``progress``.

        Decreases are accepted.  Returns the progress value recorded before
        this update so callers can compute a delta.
        """
        self._require_active()
        check_percentage(percentage)
        previous = self.progress
        self.progress = percentage
        self.updates.append(
            TaskUpdate(timestamp=now or utcnow(), progress=percentage, message=message)
        )
        return previous

    def mark_completed(self, message: str = "", now: datetime | None = None) -> None:
        """Transition to COMPLETED, forcing progress to 100."""
        self._require_active()
        self.progress = 100
        self.end_time = now or utcnow()
        if message:
            self.completion_message = message
        self.status = TaskStatus.COMPLETED

    def mark_stopped(self, now: datetime | None = None) -> None:
        """Transition to STOPPED, leaving progress untouched."""
        self._require_active()
        self.end_time = now or utcnow()
        self.status = TaskStatus.STOPPED


class TrackerData(BaseModel):
    """The persisted tracker document.

    Parameters
    ----------
    current:
        The single task designated active, if any.
    history:
        Finished tasks, most recent first.
    """

    current: Task | None = Field(default=None, alias="currentTask")
    history: list[Task] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    def to_document(self) -> dict[str, object]:
        """Return the JSON-compatible camelCase document."""
        return self.model_dump(mode="json", by_alias=True)
