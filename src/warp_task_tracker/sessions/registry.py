"""Session registry: last known inventory and per-poll diffs.

``SessionRegistry.poll`` calls the probe once, normalises the raw
descriptors into ``Session`` records and diffs their ids against the
previous snapshot.  The diff is computed entirely against the old snapshot
and the snapshot is then swapped in one step under a lock, so readers of
``current()`` never see a half-updated inventory.

A probe failure (error, timeout, or a previous call still hung) yields an
empty diff and leaves the snapshot untouched: a transient failure must
never look like every session closing at once.

Classes
-------
- Session          — normalised, ephemeral view of one window
- SessionDiff      — result of one poll
- SessionRegistry  — snapshot owner and diff engine
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, Field

from warp_task_tracker.sessions.naming import (
    UNKNOWN_PROJECT,
    derive_project_name,
    extract_working_dir,
    suggest_task_name,
)
from warp_task_tracker.sessions.probe import RawSession, SessionProbe
from warp_task_tracker.tasks.errors import ProbeError

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT: float = 3.0


class Session(BaseModel):
    """A normalised terminal window.

    Never persisted; rebuilt from probe output on every poll.

    Parameters
    ----------
    session_id:
        Stable identity key, taken from the probe.
    title:
        Window title.
    working_dir:
        Best-effort working directory.
    project_name:
        Display name derived from ``working_dir``.
    suggested_task_name:
        Name for an auto-created task.  Contains the time of derivation, so
        it differs between polls; identity stays ``session_id``.
    window_id:
        Platform window id, if known.
    last_seen:
        When the poll that produced this record ran (UTC).
    """

    session_id: str
    title: str = ""
    working_dir: str = "~"
    project_name: str = UNKNOWN_PROJECT
    suggested_task_name: str = ""
    window_id: int | None = None
    last_seen: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}


@dataclass(frozen=True)
class SessionDiff:
    """Outcome of one ``SessionRegistry.poll``.

    ``appeared`` and ``disappeared`` are empty when ``probe_failed`` is
    True; ``current`` then repeats the previous inventory.
    """

    appeared: tuple[Session, ...] = ()
    disappeared: tuple[str, ...] = ()
    current: tuple[Session, ...] = field(default=())
    probe_failed: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.appeared or self.disappeared)


class SessionRegistry:
    """Owns the last known session inventory.

    Parameters
    ----------
    probe:
        Source of raw session descriptors.
    probe_timeout:
        Seconds to wait for one probe call.  A call that overruns is
        abandoned; while it is still running, further polls fail fast
        instead of stacking up behind it.
    clock:
        Callable returning the current UTC time (injectable for tests).
    home:
        Home directory used to expand ``~`` in working directories.
    """

    def __init__(
        self,
        probe: SessionProbe,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        clock: Callable[[], datetime] | None = None,
        home: str | Path | None = None,
    ) -> None:
        if probe_timeout <= 0:
            raise ValueError(f"probe_timeout must be positive, got {probe_timeout!r}.")
        self._probe = probe
        self._probe_timeout = probe_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._home = home
        self._lock = threading.Lock()
        self._snapshot: frozenset[str] = frozenset()
        self._sessions: dict[str, Session] = {}
        self._pending: Future[list[RawSession]] | None = None

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def poll(self) -> SessionDiff:
        """Probe once and return what appeared and disappeared since last time."""
        try:
            raw_sessions = self._call_probe()
        except ProbeError as exc:
            logger.warning("Session probe failed, keeping previous inventory: %s", exc)
            return SessionDiff(current=tuple(self.current()), probe_failed=True)

        now = self._clock()
        observed: dict[str, Session] = {}
        for raw in raw_sessions:
            if raw.session_id not in observed:
                observed[raw.session_id] = self._normalize(raw, now)

        with self._lock:
            previous = self._snapshot
            appeared = tuple(
                session for session_id, session in observed.items() if session_id not in previous
            )
            disappeared = tuple(sorted(previous.difference(observed)))
            self._snapshot = frozenset(observed)
            self._sessions = observed

        if appeared or disappeared:
            logger.debug(
                "SessionRegistry: %d appeared, %d disappeared, %d current",
                len(appeared),
                len(disappeared),
                len(observed),
            )
        return SessionDiff(
            appeared=appeared,
            disappeared=disappeared,
            current=tuple(observed.values()),
        )

    def _call_probe(self) -> list[RawSession]:
        """Run the probe on a daemon thread, bounded by ``probe_timeout``."""
        if self._pending is not None and not self._pending.done():
            raise ProbeError("Previous probe call is still running.")

        future: Future[list[RawSession]] = Future()

        def run() -> None:
            try:
                future.set_result(list(self._probe.list_sessions()))
            except Exception as exc:  # noqa: BLE001
                future.set_exception(exc)

        self._pending = future
        threading.Thread(target=run, name="session-probe", daemon=True).start()
        try:
            return future.result(timeout=self._probe_timeout)
        except FutureTimeoutError:
            raise ProbeError(f"Session probe timed out after {self._probe_timeout}s.") from None
        except ProbeError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ProbeError(f"Session probe failed: {exc}") from exc

    def _normalize(self, raw: RawSession, now: datetime) -> Session:
        try:
            working_dir = extract_working_dir(raw.title, raw.working_dir_hint, self._home)
            project_name = derive_project_name(working_dir, self._home)
            task_name = suggest_task_name(project_name, now)
        except (ValueError, RuntimeError, OSError) as exc:
            logger.debug("Could not normalise session %r: %s", raw.session_id, exc)
            label = raw.window_id if raw.window_id is not None else raw.session_id
            working_dir, project_name = "~", UNKNOWN_PROJECT
            task_name = f"Terminal Session {label}"
        return Session(
            session_id=raw.session_id,
            title=raw.title,
            working_dir=working_dir,
            project_name=project_name,
            suggested_task_name=task_name,
            window_id=raw.window_id,
            last_seen=now,
        )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def current(self) -> list[Session]:
        """Return the sessions seen by the last successful poll."""
        with self._lock:
            return list(self._sessions.values())

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def snapshot(self) -> frozenset[str]:
        """Return the ids known after the last successful poll."""
        with self._lock:
            return self._snapshot

    def focused(self) -> Session | None:
        """Return the frontmost known session, if the probe can tell."""
        try:
            session_id = self._probe.focused_session_id()
        except ProbeError as exc:
            logger.debug("Could not determine focused session: %s", exc)
            return None
        return self.get(session_id) if session_id else None

    def __repr__(self) -> str:
        return f"SessionRegistry(sessions={len(self._snapshot)}, probe={self._probe!r})"
