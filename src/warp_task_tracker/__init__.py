"""warp-task-tracker — Task progress tracking bound to terminal sessions.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import warp_task_tracker
>>> warp_task_tracker.__version__
'0.1.0'
"""
from __future__ import annotations

# Task core
from warp_task_tracker.tasks.state import (
    SessionInfo,
    Task,
    TaskStatus,
    TaskUpdate,
    TrackerData,
)
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

# Storage
from warp_task_tracker.storage.base import TaskStore
from warp_task_tracker.storage.memory import InMemoryTaskStore
from warp_task_tracker.storage.filesystem import JsonFileTaskStore

# Sessions
from warp_task_tracker.sessions.probe import (
    RawSession,
    SessionProbe,
    StaticProbe,
    WarpAppleScriptProbe,
)
from warp_task_tracker.sessions.registry import Session, SessionDiff, SessionRegistry

# Reconciliation
from warp_task_tracker.sync.reconciler import ChangeReport, Reconciler, SessionFailure
from warp_task_tracker.sync.scheduler import ReconcilerLoop

# Configuration and wiring
from warp_task_tracker.config import ConfigError, ConfigManager, TrackerSettings
from warp_task_tracker.convenience import Tracker

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Task core
    "SessionInfo",
    "Task",
    "TaskStatus",
    "TaskUpdate",
    "TrackerData",
    "TaskLifecycle",
    "Suggestion",
    "SchemaVersionError",
    "TrackerSerializer",
    # Errors
    "ConflictError",
    "NotFoundError",
    "ProbeError",
    "RangeError",
    "StoreError",
    "TrackerError",
    # Events
    "ConsoleNotifier",
    "EventKind",
    "LoggingNotifier",
    "Notification",
    "NotificationDispatcher",
    "NotificationPolicy",
    "Notifier",
    "TaskEvent",
    # Storage
    "InMemoryTaskStore",
    "JsonFileTaskStore",
    "TaskStore",
    # Sessions
    "RawSession",
    "Session",
    "SessionDiff",
    "SessionProbe",
    "SessionRegistry",
    "StaticProbe",
    "WarpAppleScriptProbe",
    # Reconciliation
    "ChangeReport",
    "Reconciler",
    "ReconcilerLoop",
    "SessionFailure",
    # Configuration
    "ConfigError",
    "ConfigManager",
    "TrackerSettings",
    "Tracker",
]
