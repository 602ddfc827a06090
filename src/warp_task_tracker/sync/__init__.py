"""Session-to-task reconciliation subpackage.

Public surface
--------------
- Reconciler      — one poll-and-act cycle per ``tick``
- ChangeReport    — what a tick changed
- SessionFailure  — per-session error captured in a report
- ReconcilerLoop  — periodic timer thread driving ticks
"""
from __future__ import annotations

from warp_task_tracker.sync.reconciler import ChangeReport, Reconciler, SessionFailure
from warp_task_tracker.sync.scheduler import ReconcilerLoop

__all__ = [
    "ChangeReport",
    "Reconciler",
    "ReconcilerLoop",
    "SessionFailure",
]
