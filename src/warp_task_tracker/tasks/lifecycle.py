"""Task lifecycle: every state transition and the single-current invariant.

``TaskLifecycle`` is the only mutator of the tracker document.  The store
and the current-task slot are treated as one mutually exclusive resource:
each operation holds a lock for its whole load-modify-save cycle, so
manual commands and session reconciliation can run from different threads
without interleaving.

Manual and session-driven operations deliberately differ on conflicts:
``start`` refuses to replace a task already in progress, while
``switch_current`` replaces it, because switching sessions is a change of
focus rather than a competing creation.

Session bindings (session id → task) live in memory only.  After a
restart they are rebuilt as sessions are rediscovered; only a bound task
that is also the current task is recovered from the store.

Classes
-------
- Suggestion     — result of ``current_or_suggested``
- TaskLifecycle  — state machine over a ``TaskStore``
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable, Literal

from warp_task_tracker.storage.base import TaskStore
from warp_task_tracker.tasks.errors import (
    ConflictError,
    NotFoundError,
    check_percentage,
)
from warp_task_tracker.tasks.events import EventKind, TaskEvent
from warp_task_tracker.tasks.state import (
    SessionInfo,
    Task,
    TrackerData,
    new_task_id,
    utcnow,
)

if TYPE_CHECKING:
    from warp_task_tracker.sessions.registry import Session

logger = logging.getLogger(__name__)

TaskListener = Callable[[TaskEvent], None]


@dataclass(frozen=True)
class Suggestion:
    """What a UI should show when asked "what am I working on?".

    ``kind`` is ``"current"`` for the stored current task, ``"suggested"``
    for a session-bound task that is not current, or ``"none"``.
    """

    kind: Literal["current", "suggested", "none"]
    task: Task | None = None
    session_id: str | None = None


class TaskLifecycle:
    """Create, update, finish, and bind tasks.

    Every operation that changes the stored document saves it before
    returning; if the save raises ``StoreError`` the in-memory bindings are
    left as they were and the error propagates.

    Parameters
    ----------
    store:
        Persistence for the current task and history.
    listeners:
        Callables receiving a ``TaskEvent`` after each applied transition.
    clock:
        Callable returning the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        store: TaskStore,
        listeners: Iterable[TaskListener] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._listeners: list[TaskListener] = list(listeners or [])
        self._clock = clock or utcnow
        self._lock = threading.RLock()
        self._bound: dict[str, Task] = {}

    def add_listener(self, listener: TaskListener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: TaskEvent) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("Task listener %r failed for %s event", listener, event.kind.value)

    def _release_binding(self, task: Task) -> None:
        session_id = task.bound_session_id
        if session_id is None:
            return
        bound = self._bound.get(session_id)
        if bound is not None and bound.id == task.id:
            del self._bound[session_id]

    # ------------------------------------------------------------------
    # Manual operations
    # ------------------------------------------------------------------

    def start(self, name: str, description: str = "") -> Task:
        """Create a new current task.

        Raises
        ------
        ValueError
            If ``name`` is blank.
        ConflictError
            If a current task already exists.  The blocking task is
            available as ``error.task``.
        StoreError
            If the new task could not be persisted.
        """
        if not name or not name.strip():
            raise ValueError("Task name must not be empty.")
        with self._lock:
            data = self._store.load()
            if data.current is not None:
                raise ConflictError(
                    f"A task is already in progress: {data.current.name!r}. "
                    "Complete or stop it first.",
                    task=data.current,
                )
            task = Task(name=name.strip(), description=description, start_time=self._clock())
            data.current = task
            self._store.save(data)
            logger.debug("TaskLifecycle: started %r (%s)", task.name, task.id)
        self._emit(TaskEvent(EventKind.STARTED, task.model_copy(deep=True)))
        return task

    def update(self, percentage: int, message: str = "") -> Task:
        """Record progress on the current task.

        Decreasing progress is accepted.  The emitted PROGRESS event
        carries the previous value so notifiers can compute the delta.

        Raises
        ------
        NotFoundError
            If there is no current task.
        RangeError
            If ``percentage`` is outside [0, 100].
        StoreError
            If the update could not be persisted.
        """
        with self._lock:
            data = self._store.load()
            task = data.current
            if task is None:
                raise NotFoundError("No active task. Start a task first.")
            check_percentage(percentage)
            previous = task.record_update(percentage, message, now=self._clock())
            self._store.save(data)
            session_id = task.bound_session_id
            bound = self._bound.get(session_id) if session_id is not None else None
            if bound is not None and bound.id == task.id:
                self._bound[session_id] = task.model_copy(deep=True)
            logger.debug("TaskLifecycle: %r progress %d -> %d", task.name, previous, percentage)
        self._emit(
            TaskEvent(EventKind.PROGRESS, task.model_copy(deep=True), previous_progress=previous)
        )
        return task

    def complete(self, message: str = "") -> Task:
        """Finish the current task at 100% and move it to the head of history.

        Raises
        ------
        NotFoundError
            If there is no current task.
        StoreError
            If the change could not be persisted.
        """
        with self._lock:
            data = self._store.load()
            task = data.current
            if task is None:
                raise NotFoundError("No active task to complete.")
            task.mark_completed(message, now=self._clock())
            data.history.insert(0, task)
            data.current = None
            self._store.save(data)
            self._release_binding(task)
            logger.debug("TaskLifecycle: completed %r", task.name)
        self._emit(TaskEvent(EventKind.COMPLETED, task.model_copy(deep=True)))
        return task

    def stop(self) -> Task:
        """Stop the current task without changing its progress.

        Raises
        ------
        NotFoundError
            If there is no current task.
        StoreError
            If the change could not be persisted.
        """
        with self._lock:
            data = self._store.load()
            task = data.current
            if task is None:
                raise NotFoundError("No active task to stop.")
            task.mark_stopped(now=self._clock())
            data.history.insert(0, task)
            data.current = None
            self._store.save(data)
            self._release_binding(task)
            logger.debug("TaskLifecycle: stopped %r at %d%%", task.name, task.progress)
        self._emit(TaskEvent(EventKind.STOPPED, task.model_copy(deep=True)))
        return task

    def status(self) -> Task | None:
        """Return the current task, or None."""
        with self._lock:
            return self._store.load().current

    def history(self, limit: int | None = None) -> list[Task]:
        """Return finished tasks, most recent first."""
        with self._lock:
            tasks = self._store.load().history
        return tasks if limit is None else tasks[: max(limit, 0)]

    def snapshot(self) -> TrackerData:
        """Return a copy of the stored document."""
        with self._lock:
            return self._store.load()

    # ------------------------------------------------------------------
    # Session-bound operations
    # ------------------------------------------------------------------

    def create_for_session(self, session: Session) -> Task:
        """Return the task bound to ``session``, creating it if needed.

        Idempotent per ``session.session_id``.  A current task in the store
        that is bound to the session is adopted instead of creating a new
        one.  New bound tasks are held in memory only; nothing is written
        to the store.

        Raises
        ------
        StoreError
            If the store could not be read while looking for a current
            task to adopt.
        """
        session_id = session.session_id
        with self._lock:
            existing = self._bound.get(session_id)
            if existing is not None:
                return existing.model_copy(deep=True)

            current = self._store.load().current
            if current is not None and current.bound_session_id == session_id and current.is_active:
                self._bound[session_id] = current
                logger.debug("TaskLifecycle: re-bound current task %r to %r", current.name, session_id)
                return current.model_copy(deep=True)

            task = Task(
                id=new_task_id(prefix=session_id),
                name=session.suggested_task_name or f"Terminal Session {session_id}",
                description=(
                    f"Auto-generated task for {session.project_name}\n"
                    f"Working directory: {session.working_dir}"
                ),
                start_time=self._clock(),
                bound_session_id=session_id,
                session_info=SessionInfo(
                    window_id=session.window_id,
                    project_name=session.project_name,
                    working_dir=session.working_dir,
                    title=session.title,
                ),
            )
            self._bound[session_id] = task
            logger.debug("TaskLifecycle: created %r for session %r", task.name, session_id)
        self._emit(TaskEvent(EventKind.CREATED, task.model_copy(deep=True), automatic=True))
        return task.model_copy(deep=True)

    def update_for_session(self, session_id: str, percentage: int, message: str = "") -> Task:
        """Record progress on the task bound to ``session_id``.

        The store is written only when that task is also the current task.

        Raises
        ------
        NotFoundError
            If no task is bound to ``session_id``.
        RangeError
            If ``percentage`` is outside [0, 100].
        StoreError
            If the current task could not be persisted.
        """
        with self._lock:
            bound = self._bound.get(session_id)
            if bound is None:
                raise NotFoundError(f"No task found for session {session_id!r}.", session_id)
            check_percentage(percentage)
            task = bound.model_copy(deep=True)
            previous = task.record_update(percentage, message, now=self._clock())
            data = self._store.load()
            if data.current is not None and data.current.bound_session_id == session_id:
                data.current = task.model_copy(deep=True)
                self._store.save(data)
            self._bound[session_id] = task
        self._emit(
            TaskEvent(
                EventKind.PROGRESS,
                task.model_copy(deep=True),
                previous_progress=previous,
                automatic=True,
            )
        )
        return task.model_copy(deep=True)

    def retire_for_session(self, session_id: str) -> Task | None:
        """Stop the task bound to a closed session and move it to history.

        Returns None (and changes nothing) when no task is bound.  If the
        retired task was also the current task, current is cleared.  The stored
        copy of that task is the one retired, so progress recorded by
        another process is kept.

        Raises
        ------
        StoreError
            If the change could not be persisted; the binding is kept.
        """
        with self._lock:
            bound = self._bound.get(session_id)
            if bound is None:
                return None
            data = self._store.load()
            task = bound.model_copy(deep=True)
            if data.current is not None and data.current.bound_session_id == session_id:
                if data.current.id == bound.id:
                    task = data.current
                data.current = None
            task.mark_stopped(now=self._clock())
            data.history.insert(0, task)
            self._store.save(data)
            del self._bound[session_id]
            logger.debug("TaskLifecycle: retired %r for closed session %r", task.name, session_id)
        self._emit(TaskEvent(EventKind.STOPPED, task.model_copy(deep=True), automatic=True))
        return task

    def switch_current(self, session_id: str) -> Task:
        """Make the task bound to ``session_id`` the current task.

        Whatever was current is replaced without a conflict check.

        Raises
        ------
        NotFoundError
            If no task is bound to ``session_id``.
        StoreError
            If the change could not be persisted.
        """
        with self._lock:
            bound = self._bound.get(session_id)
            if bound is None:
                raise NotFoundError(f"No task found for session {session_id!r}.", session_id)
            data = self._store.load()
            previous = data.current
            if previous is not None and previous.id != bound.id and not previous.is_bound:
                logger.warning(
                    "Switching to session %r replaces unbound current task %r",
                    session_id,
                    previous.name,
                )
            data.current = bound.model_copy(deep=True)
            self._store.save(data)
            task = bound.model_copy(deep=True)
        self._emit(TaskEvent(EventKind.SWITCHED, task.model_copy(deep=True), automatic=True))
        return task

    # ------------------------------------------------------------------
    # Bound-task queries
    # ------------------------------------------------------------------

    def task_for_session(self, session_id: str) -> Task | None:
        with self._lock:
            task = self._bound.get(session_id)
            return task.model_copy(deep=True) if task is not None else None

    def bound_tasks(self) -> dict[str, Task]:
        """Return a copy of the session id → bound task map."""
        with self._lock:
            return {sid: task.model_copy(deep=True) for sid, task in self._bound.items()}

    def current_or_suggested(self, focused_session_id: str | None = None) -> Suggestion:
        """Return the current task, else a bound task worth switching to.

        Preference order: the stored current task; the task bound to
        ``focused_session_id``; the first bound task; nothing.
        """
        with self._lock:
            current = self._store.load().current
            if current is not None:
                return Suggestion("current", current, current.bound_session_id)
            if focused_session_id is not None and focused_session_id in self._bound:
                task = self._bound[focused_session_id].model_copy(deep=True)
                return Suggestion("suggested", task, focused_session_id)
            for session_id, task in self._bound.items():
                return Suggestion("suggested", task.model_copy(deep=True), session_id)
        return Suggestion("none")

    def __repr__(self) -> str:
        return f"TaskLifecycle(store={self._store!r}, bound={len(self._bound)})"
