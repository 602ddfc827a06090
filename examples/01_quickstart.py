#!/usr/bin/env python3
"""Example: Quickstart — warp-task-tracker

Minimal working example: track a task by hand, then let the reconciler
create and retire tasks for terminal sessions served by a static probe.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install warp-task-tracker
"""
from __future__ import annotations

import warp_task_tracker
from warp_task_tracker import RawSession, StaticProbe, Tracker


def main() -> None:
    print(f"warp-task-tracker version: {warp_task_tracker.__version__}")

    # Step 1: Track a task by hand
    tracker = Tracker.in_memory()
    tracker.lifecycle.start("Write release notes")
    tracker.lifecycle.update(40, "draft done")
    task = tracker.lifecycle.complete("shipped")
    print(f"Completed '{task.name}' at {task.progress}%")

    # Step 2: Bind tasks to terminal sessions
    probe = StaticProbe(
        [
            RawSession(session_id="warp_1", title="zsh - ~/code/shop-api", window_id=1),
            RawSession(session_id="warp_2", title="zsh - ~/code/web-app", window_id=2),
        ]
    )
    tracker = Tracker.in_memory(probe=probe)
    report = tracker.reconciler.tick()
    for bound in report.new_tasks:
        print(f"  + {bound.name} ({bound.bound_session_id})")

    # Step 3: Close a window and reconcile again
    probe.set_sessions([RawSession(session_id="warp_2", title="zsh - ~/code/web-app", window_id=2)])
    report = tracker.reconciler.tick()
    for closed in report.closed_tasks:
        print(f"  - {closed.name} ({closed.status.value})")

    print(f"History entries: {len(tracker.lifecycle.history())}")


if __name__ == "__main__":
    main()
