"""Task events and notification dispatch.

``TaskLifecycle`` emits a ``TaskEvent`` after every persisted transition.
A ``NotificationPolicy`` decides which events are worth telling the user
about, and a ``NotificationDispatcher`` forwards those to one or more
``Notifier`` sinks.  Delivering desktop notifications is left to sinks
living outside this package.

Classes
-------
- EventKind              — enum of lifecycle event types
- TaskEvent              — a single lifecycle event
- Notification           — user-facing message built from an event
- NotificationPolicy     — trigger rules (creation, progress jumps, completion)
- Notifier               — abstract notification sink
- LoggingNotifier        — sink writing to the ``logging`` module
- ConsoleNotifier        — sink printing to a ``rich`` console
- NotificationDispatcher — lifecycle listener wiring policy to sinks
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from rich.console import Console

from warp_task_tracker.tasks.state import Task

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Warp Task Tracker"


class EventKind(str, Enum):
    """Lifecycle transitions reported to listeners."""

    STARTED = "started"
    CREATED = "created"
    PROGRESS = "progress"
    COMPLETED = "completed"
    STOPPED = "stopped"
    SWITCHED = "switched"


@dataclass(frozen=True)
class TaskEvent:
    """A lifecycle transition that has already been applied.

    Parameters
    ----------
    kind:
        What happened.
    task:
        The task after the transition.
    previous_progress:
        For PROGRESS events, the progress recorded before the update.
    automatic:
        True when the transition was driven by session reconciliation
        rather than a manual command.
    """

    kind: EventKind
    task: Task
    previous_progress: int | None = None
    automatic: bool = False

    @property
    def delta(self) -> int:
        """Signed progress change carried by a PROGRESS event (0 otherwise)."""
        if self.previous_progress is None:
            return 0
        return self.task.progress - self.previous_progress


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    event: TaskEvent


class NotificationPolicy:
    """Decide which task events produce a notification.

    Notifications fire on task creation (manual start or session
    auto-create), on a progress increase of at least ``threshold`` points,
    on completion, and when a task is stopped because its session closed.

    Parameters
    ----------
    enabled:
        Master switch; when False nothing fires.
    threshold:
        Minimum progress jump that fires a PROGRESS notification.
    sign_agnostic:
        When True, decreases of at least ``threshold`` also fire.
    """

    def __init__(
        self,
        enabled: bool = True,
        threshold: int = 25,
        sign_agnostic: bool = False,
    ) -> None:
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold!r}.")
        self.enabled = enabled
        self.threshold = threshold
        self.sign_agnostic = sign_agnostic

    def should_notify(self, event: TaskEvent) -> bool:
        if not self.enabled:
            return False
        if event.kind is EventKind.PROGRESS:
            change = abs(event.delta) if self.sign_agnostic else event.delta
            return change >= self.threshold and event.delta != 0
        if event.kind is EventKind.STOPPED:
            return event.automatic
        return event.kind in (EventKind.STARTED, EventKind.CREATED, EventKind.COMPLETED)

    def build(self, event: TaskEvent) -> Notification | None:
        """Return the notification for ``event``, or None if it should not fire."""
        if not self.should_notify(event):
            return None
        name = event.task.name
        messages = {
            EventKind.STARTED: f"Started tracking: {name}",
            EventKind.CREATED: f"Auto-created task: {name}",
            EventKind.PROGRESS: f"{name}: {event.task.progress}% complete",
            EventKind.COMPLETED: f"Task completed: {name}",
            EventKind.STOPPED: f"Task auto-stopped: {name}",
        }
        return Notification(title=NOTIFICATION_TITLE, message=messages[event.kind], event=event)


class Notifier(ABC):
    """A destination for notifications."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        """Deliver ``notification``."""


class LoggingNotifier(Notifier):
    """Write notifications to a logger at INFO level."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logger

    def notify(self, notification: Notification) -> None:
        self._logger.info("%s: %s", notification.title, notification.message)


class ConsoleNotifier(Notifier):
    """Print notifications to a ``rich`` console."""

    _STYLES = {
        EventKind.STARTED: "green",
        EventKind.CREATED: "cyan",
        EventKind.PROGRESS: "blue",
        EventKind.COMPLETED: "bold green",
        EventKind.STOPPED: "yellow",
    }

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def notify(self, notification: Notification) -> None:
        style = self._STYLES.get(notification.event.kind, "white")
        self._console.print(f"[{style}]{notification.message}[/{style}]")


class NotificationDispatcher:
    """Lifecycle listener that applies a policy and fans out to sinks.

    Instances are callable so they can be registered directly with
    ``TaskLifecycle.add_listener``.  A failing sink is logged and does not
    prevent delivery to the remaining sinks.
    """

    def __init__(
        self,
        policy: NotificationPolicy | None = None,
        notifiers: Iterable[Notifier] | None = None,
    ) -> None:
        self.policy = policy or NotificationPolicy()
        self._notifiers: list[Notifier] = list(notifiers or [])
        self.sent: int = 0

    def add_notifier(self, notifier: Notifier) -> None:
        self._notifiers.append(notifier)

    def __call__(self, event: TaskEvent) -> None:
        notification = self.policy.build(event)
        if notification is None:
            return
        for notifier in self._notifiers:
            try:
                notifier.notify(notification)
            except Exception:  # noqa: BLE001
                logger.exception("Notifier %r failed for %s event", notifier, event.kind.value)
        self.sent += 1
