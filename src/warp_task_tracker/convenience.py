"""Convenience API wiring the tracker together.

Example
-------
::

    from warp_task_tracker import Tracker
    tracker = Tracker.in_memory()
    tracker.lifecycle.start("Write docs")
    tracker.lifecycle.update(50, "half way")

"""
from __future__ import annotations

from pathlib import Path

from warp_task_tracker.config import ConfigManager, TrackerSettings, tracker_home
from warp_task_tracker.sessions.probe import SessionProbe, StaticProbe
from warp_task_tracker.sessions.registry import SessionRegistry
from warp_task_tracker.storage.base import TaskStore
from warp_task_tracker.storage.filesystem import JsonFileTaskStore
from warp_task_tracker.storage.memory import InMemoryTaskStore
from warp_task_tracker.sync.reconciler import Reconciler
from warp_task_tracker.sync.scheduler import ReconcilerLoop
from warp_task_tracker.tasks.events import (
    LoggingNotifier,
    NotificationDispatcher,
    NotificationPolicy,
    Notifier,
)
from warp_task_tracker.tasks.lifecycle import TaskLifecycle


class Tracker:
    """Store, lifecycle, registry, and reconciler built from one settings object.

    Parameters
    ----------
    store:
        Task persistence.
    probe:
        Session source.  Defaults to an empty ``StaticProbe``.
    settings:
        Runtime settings.  Defaults to ``TrackerSettings()``.
    notifiers:
        Notification sinks.  Defaults to a ``LoggingNotifier``.
    follow_focus:
        Forwarded to ``Reconciler``.
    """

    def __init__(
        self,
        store: TaskStore,
        probe: SessionProbe | None = None,
        settings: TrackerSettings | None = None,
        notifiers: list[Notifier] | None = None,
        follow_focus: bool = False,
    ) -> None:
        self.settings = settings or TrackerSettings()
        self.store = store
        self.probe = probe or StaticProbe()
        self.dispatcher = NotificationDispatcher(
            NotificationPolicy(
                enabled=self.settings.notifications,
                threshold=self.settings.notify_threshold,
                sign_agnostic=self.settings.notify_sign_agnostic,
            ),
            notifiers if notifiers is not None else [LoggingNotifier()],
        )
        self.lifecycle = TaskLifecycle(store, listeners=[self.dispatcher])
        self.registry = SessionRegistry(self.probe, probe_timeout=self.settings.probe_timeout)
        self.reconciler = Reconciler(self.registry, self.lifecycle, follow_focus=follow_focus)

    @classmethod
    def in_memory(cls, probe: SessionProbe | None = None, **kwargs: object) -> Tracker:
        """Build a tracker over an ``InMemoryTaskStore``."""
        return cls(InMemoryTaskStore(), probe=probe, **kwargs)  # type: ignore[arg-type]

    @classmethod
    def from_home(
        cls,
        home: str | Path | None = None,
        probe: SessionProbe | None = None,
        **kwargs: object,
    ) -> Tracker:
        """Build a tracker over ``<home>/tasks.json`` and ``<home>/config.json``."""
        directory = Path(home) if home is not None else tracker_home()
        settings = ConfigManager(directory).load()
        return cls(JsonFileTaskStore(directory), probe=probe, settings=settings, **kwargs)  # type: ignore[arg-type]

    def loop(self) -> ReconcilerLoop:
        """Return a loop ticking at the configured scan interval."""
        return ReconcilerLoop(self.reconciler, interval=self.settings.scan_interval)

    def __repr__(self) -> str:
        return f"Tracker(store={self.store!r}, probe={self.probe!r})"
