"""Task tracking subpackage.

Provides the task domain model, the lifecycle state machine that owns
every transition, lifecycle events with notification dispatch, and
document serialization.

Public surface
--------------
- Task, TaskStatus, TaskUpdate, SessionInfo, TrackerData — domain models
- TaskLifecycle, Suggestion                              — state machine
- TaskEvent, EventKind, NotificationPolicy,
  NotificationDispatcher, Notifier                       — events
- TrackerSerializer, SchemaVersionError                  — JSON / YAML
- TrackerError and subclasses                            — error taxonomy
"""
from __future__ import annotations

from warp_task_tracker.tasks.errors import (
    ConflictError,
    NotFoundError,
    ProbeError,
    RangeError,
    StoreError,
    TrackerError,
)
from warp_task_tracker.tasks.events import (
    ConsoleNotifier,
    EventKind,
    LoggingNotifier,
    Notification,
    NotificationDispatcher,
    NotificationPolicy,
    Notifier,
    TaskEvent,
)
from warp_task_tracker.tasks.lifecycle import Suggestion, TaskLifecycle
from warp_task_tracker.tasks.serializer import SchemaVersionError, TrackerSerializer
from warp_task_tracker.tasks.state import (
    SessionInfo,
    Task,
    TaskStatus,
    TaskUpdate,
    TrackerData,
)

__all__ = [
    "ConflictError",
    "ConsoleNotifier",
    "EventKind",
    "LoggingNotifier",
    "NotFoundError",
    "Notification",
    "NotificationDispatcher",
    "NotificationPolicy",
    "Notifier",
    "ProbeError",
    "RangeError",
    "SchemaVersionError",
    "SessionInfo",
    "StoreError",
    "Suggestion",
    "Task",
    "TaskEvent",
    "TaskLifecycle",
    "TaskStatus",
    "TaskUpdate",
    "TrackerData",
    "TrackerError",
    "TrackerSerializer",
]
