"""Session probes: where raw terminal-window inventories come from.

A ``SessionProbe`` is a one-method capability returning the windows that
are currently open.  Its output is volatile and carries no ordering or
completeness guarantee across calls.

Classes
-------
- RawSession            — unnormalised window descriptor
- SessionProbe          — abstract probe
- StaticProbe           — probe over an in-memory list (tests, scripting)
- WarpAppleScriptProbe  — lists Warp windows on macOS via ``osascript``
"""
from __future__ import annotations

import logging
import re
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import Iterable

from pydantic import BaseModel

from warp_task_tracker.tasks.errors import ProbeError

logger = logging.getLogger(__name__)


class RawSession(BaseModel):
    """A window as reported by a probe.

    Parameters
    ----------
    session_id:
        Identifier derived from the window identity.  Must stay stable
        across polls for the same window for diffing to be meaningful.
    title:
        Window title.
    working_dir_hint:
        Best-effort working directory, if the probe knows one.
    window_id:
        Numeric window id, if the platform exposes one.
    """

    session_id: str
    title: str = ""
    working_dir_hint: str | None = None
    window_id: int | None = None

    model_config = {"frozen": True}


class SessionProbe(ABC):
    """Capability interface over the external window inventory."""

    @abstractmethod
    def list_sessions(self) -> list[RawSession]:
        """Return every currently observable session.

        Raises
        ------
        ProbeError
            If the inventory cannot be obtained.
        """

    def focused_session_id(self) -> str | None:
        """Return the id of the frontmost session, if the probe can tell."""
        return None


class StaticProbe(SessionProbe):
    """Probe returning whatever list it was last given.

    Thread-safe so tests can change the inventory while a reconciler loop
    is polling.

    Parameters
    ----------
    sessions:
        Initial inventory.
    """

    def __init__(self, sessions: Iterable[RawSession] | None = None) -> None:
        self._lock = threading.Lock()
        self._sessions: list[RawSession] = list(sessions or [])
        self._error: Exception | None = None
        self._focused: str | None = None
        self.calls: int = 0

    def set_sessions(self, sessions: Iterable[RawSession]) -> None:
        with self._lock:
            self._sessions = list(sessions)

    def fail_with(self, error: Exception | None) -> None:
        """Make subsequent calls raise ``error`` (``None`` to recover)."""
        with self._lock:
            self._error = error

    def set_focused(self, session_id: str | None) -> None:
        with self._lock:
            self._focused = session_id

    def list_sessions(self) -> list[RawSession]:
        with self._lock:
            self.calls += 1
            if self._error is not None:
                raise self._error
            return list(self._sessions)

    def focused_session_id(self) -> str | None:
        with self._lock:
            return self._focused


# ---------------------------------------------------------------------------
# Warp on macOS
# ---------------------------------------------------------------------------

_LIST_WINDOWS_SCRIPT = """
tell application "System Events"
  set sessionInfo to {}
  repeat with warpProcess in (every process whose name is "Warp")
    try
      repeat with warpWindow in (every window of warpProcess)
        try
          set end of sessionInfo to {title of warpWindow, id of warpWindow}
        end try
      end repeat
    end try
  end repeat
  return sessionInfo
end tell
"""

_FRONT_WINDOW_SCRIPT = """
tell application "System Events"
  set frontApp to name of first application process whose frontmost is true
  if frontApp is "Warp" then
    set frontWindow to front window of first application process whose name is "Warp"
    return title of frontWindow & "," & id of frontWindow
  else
    return ""
  end if
end tell
"""

_WINDOW_ENTRY = re.compile(r"\{([^{}]+?), (\d+)\}")

SESSION_ID_PREFIX = "warp_"


def session_id_for_window(window_id: int) -> str:
    return f"{SESSION_ID_PREFIX}{window_id}"


def parse_window_list(output: str) -> list[RawSession]:
    """Parse ``{title, id}`` records from AppleScript list output."""
    sessions: list[RawSession] = []
    for match in _WINDOW_ENTRY.finditer(output):
        title, window_id = match.group(1), int(match.group(2))
        sessions.append(
            RawSession(
                session_id=session_id_for_window(window_id),
                title=title.replace('"', "").strip(),
                window_id=window_id,
            )
        )
    return sessions


class WarpAppleScriptProbe(SessionProbe):
    """List Warp terminal windows through System Events.

    Every ``osascript`` call is bounded by ``timeout`` seconds.

    Parameters
    ----------
    timeout:
        Per-call subprocess timeout in seconds.
    osascript:
        Path or name of the ``osascript`` executable.
    """

    def __init__(self, timeout: float = 3.0, osascript: str = "osascript") -> None:
        self._timeout = timeout
        self._osascript = osascript

    def _run(self, script: str) -> str:
        try:
            result = subprocess.run(
                [self._osascript, "-e", script],
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=True,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProbeError(f"osascript timed out after {self._timeout}s") from exc
        except subprocess.CalledProcessError as exc:
            raise ProbeError(f"osascript failed: {exc.stderr.strip() or exc}") from exc
        except OSError as exc:
            raise ProbeError(f"Could not run {self._osascript}: {exc}") from exc
        return result.stdout

    def list_sessions(self) -> list[RawSession]:
        return parse_window_list(self._run(_LIST_WINDOWS_SCRIPT))

    def focused_session_id(self) -> str | None:
        try:
            output = self._run(_FRONT_WINDOW_SCRIPT).strip()
        except ProbeError as exc:
            logger.debug("Could not determine focused Warp window: %s", exc)
            return None
        if not output:
            return None
        _, _, window_id = output.rpartition(",")
        if not window_id.strip().isdigit():
            return None
        return session_id_for_window(int(window_id.strip()))
