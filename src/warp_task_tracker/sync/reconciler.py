"""Reconciler: one poll-and-act cycle between sessions and tasks.

Each tick polls the ``SessionRegistry`` for a diff, creates (or resumes)
a bound task for every session that appeared, and retires the bound task
of every session that disappeared.  A failure for one session is logged
and recorded in the report; the remaining sessions are still processed.

Only one tick runs at a time.  A tick requested while another is in
flight is skipped rather than queued.

Classes
-------
- SessionFailure  — one session whose create/retire step failed
- ChangeReport    — what a tick changed
- Reconciler      — the tick driver
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Literal

from warp_task_tracker.sessions.registry import Session, SessionRegistry
from warp_task_tracker.tasks.lifecycle import TaskLifecycle
from warp_task_tracker.tasks.state import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionFailure:
    """A per-session step that raised during a tick."""

    session_id: str
    action: Literal["create", "retire", "switch"]
    error: Exception

    def __str__(self) -> str:
        return f"{self.action} {self.session_id}: {self.error}"


@dataclass
class ChangeReport:
    """Outcome of one reconciler tick.

    Parameters
    ----------
    new_tasks:
        Tasks created or resumed for sessions that appeared.
    closed_tasks:
        Tasks retired because their session disappeared.
    all_sessions:
        The full inventory seen by this tick's poll.
    failures:
        Sessions whose step raised; their tasks are unchanged.
    appeared:
        Ids of sessions that appeared.
    disappeared:
        Ids of sessions that disappeared.
    switched_to:
        Task made current by focus following, if any.
    probe_failed:
        True when the probe failed and the tick saw no change.
    """

    new_tasks: list[Task] = field(default_factory=list)
    closed_tasks: list[Task] = field(default_factory=list)
    all_sessions: list[Session] = field(default_factory=list)
    failures: list[SessionFailure] = field(default_factory=list)
    appeared: list[str] = field(default_factory=list)
    disappeared: list[str] = field(default_factory=list)
    switched_to: Task | None = None
    probe_failed: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.appeared or self.disappeared or self.switched_to is not None)


ReportConsumer = Callable[[ChangeReport], None]


class Reconciler:
    """Drive session-bound task transitions from registry diffs.

    Parameters
    ----------
    registry:
        Source of session diffs.
    lifecycle:
        Owner of task transitions.
    consumers:
        Callables receiving each ``ChangeReport`` that has changes.
    follow_focus:
        When True, after each tick the task bound to the focused session
        becomes current (via ``TaskLifecycle.switch_current``).
    """

    def __init__(
        self,
        registry: SessionRegistry,
        lifecycle: TaskLifecycle,
        consumers: Iterable[ReportConsumer] | None = None,
        follow_focus: bool = False,
    ) -> None:
        self._registry = registry
        self._lifecycle = lifecycle
        self._consumers: list[ReportConsumer] = list(consumers or [])
        self.follow_focus = follow_focus
        self._tick_lock = threading.Lock()
        self.ticks: int = 0
        self.skipped: int = 0

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def lifecycle(self) -> TaskLifecycle:
        return self._lifecycle

    def add_consumer(self, consumer: ReportConsumer) -> None:
        self._consumers.append(consumer)

    @property
    def in_flight(self) -> bool:
        return self._tick_lock.locked()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> ChangeReport | None:
        """Run one poll-act cycle.

        Returns
        -------
        ChangeReport | None
            The report, or None when skipped because another tick was
            still running.
        """
        if not self._tick_lock.acquire(blocking=False):
            self.skipped += 1
            logger.debug("Reconciler: previous tick still running, skipping")
            return None
        try:
            report = self._run_tick()
            self.ticks += 1
            if report.has_changes:
                self._publish(report)
            return report
        finally:
            self._tick_lock.release()

    def _run_tick(self) -> ChangeReport:
        diff = self._registry.poll()
        report = ChangeReport(
            all_sessions=list(diff.current),
            appeared=[session.session_id for session in diff.appeared],
            disappeared=list(diff.disappeared),
            probe_failed=diff.probe_failed,
        )

        for session in diff.appeared:
            try:
                report.new_tasks.append(self._lifecycle.create_for_session(session))
            except Exception as exc:  # noqa: BLE001
                logger.error("Could not create task for session %r: %s", session.session_id, exc)
                report.failures.append(SessionFailure(session.session_id, "create", exc))

        for session_id in diff.disappeared:
            try:
                task = self._lifecycle.retire_for_session(session_id)
            except Exception as exc:  # noqa: BLE001
                logger.error("Could not retire task for session %r: %s", session_id, exc)
                report.failures.append(SessionFailure(session_id, "retire", exc))
                continue
            if task is not None:
                report.closed_tasks.append(task)

        if self.follow_focus and not diff.probe_failed:
            self._follow_focus(report)

        if report.has_changes:
            logger.info(
                "Reconciler: %d new task(s), %d closed task(s), %d failure(s)",
                len(report.new_tasks),
                len(report.closed_tasks),
                len(report.failures),
            )
        return report

    def _follow_focus(self, report: ChangeReport) -> None:
        focused = self._registry.focused()
        if focused is None:
            return
        bound = self._lifecycle.task_for_session(focused.session_id)
        if bound is None:
            return
        current = self._lifecycle.status()
        if current is not None and current.id == bound.id:
            return
        try:
            report.switched_to = self._lifecycle.switch_current(focused.session_id)
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not switch to session %r: %s", focused.session_id, exc)
            report.failures.append(SessionFailure(focused.session_id, "switch", exc))

    def _publish(self, report: ChangeReport) -> None:
        for consumer in self._consumers:
            try:
                consumer(report)
            except Exception:  # noqa: BLE001
                logger.exception("Change report consumer %r failed", consumer)
