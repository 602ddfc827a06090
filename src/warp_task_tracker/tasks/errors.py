"""Error taxonomy for the task tracker.

Every error raised by the lifecycle, registry, and storage layers derives
from ``TrackerError`` so callers can catch the whole family at a command
boundary and still dispatch on the concrete kind.

Classes
-------
- TrackerError   — common base class
- ConflictError  — request would violate the single-current invariant
- NotFoundError  — operation needs a current or bound task that is absent
- RangeError     — progress percentage outside [0, 100]
- ProbeError     — session enumeration failed (recovered as "no change")
- StoreError     — persistence failed; the operation was not applied
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from warp_task_tracker.tasks.state import Task


class TrackerError(Exception):
    """Base class for all tracker errors."""


class ConflictError(TrackerError):
    """Raised when a request conflicts with the task already in progress.

    Parameters
    ----------
    message:
        Human-readable description of the conflict.
    task:
        The blocking task, included so the caller can display it without
        a second query.
    """

    def __init__(self, message: str, task: Task | None = None) -> None:
        self.task = task
        super().__init__(message)


class NotFoundError(TrackerError, LookupError):
    """Raised when no current task (or no task bound to a session) exists."""

    def __init__(self, message: str, session_id: str | None = None) -> None:
        self.session_id = session_id
        super().__init__(message)


class RangeError(TrackerError, ValueError):
    """Raised when a progress percentage falls outside [0, 100]."""

    def __init__(self, percentage: object) -> None:
        self.percentage = percentage
        super().__init__(
            f"Progress percentage must be between 0 and 100, got {percentage!r}."
        )


class ProbeError(TrackerError):
    """Raised by a ``SessionProbe`` when session enumeration fails."""


class StoreError(TrackerError):
    """Raised by a ``TaskStore`` when loading or saving fails."""


def check_percentage(percentage: int) -> int:
    """Return ``percentage`` unchanged or raise ``RangeError``."""
    if isinstance(percentage, bool) or not isinstance(percentage, int):
        raise RangeError(percentage)
    if percentage < 0 or percentage > 100:
        raise RangeError(percentage)
    return percentage
