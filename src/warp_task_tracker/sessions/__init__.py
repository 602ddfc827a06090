"""Session discovery subpackage.

Turns a volatile inventory of terminal windows into normalised ``Session``
records and appeared/disappeared diffs.

Public surface
--------------
- RawSession            — probe output record
- SessionProbe          — abstract probe
- StaticProbe           — in-memory probe
- WarpAppleScriptProbe  — macOS Warp probe
- Session               — normalised window
- SessionDiff           — result of one poll
- SessionRegistry       — snapshot owner and diff engine
"""
from __future__ import annotations

from warp_task_tracker.sessions.probe import (
    RawSession,
    SessionProbe,
    StaticProbe,
    WarpAppleScriptProbe,
)
from warp_task_tracker.sessions.registry import Session, SessionDiff, SessionRegistry

__all__ = [
    "RawSession",
    "Session",
    "SessionDiff",
    "SessionProbe",
    "SessionRegistry",
    "StaticProbe",
    "WarpAppleScriptProbe",
]
