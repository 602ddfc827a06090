"""Task store subpackage.

All stores implement the ``TaskStore`` ABC: ``load`` returns the tracker
document, ``save`` replaces it atomically.

Public surface
--------------
- TaskStore          — abstract base class
- InMemoryTaskStore  — in-process store (useful for testing)
- JsonFileTaskStore  — ``tasks.json`` on the local filesystem
- FileLock           — advisory sentinel-file lock used by the JSON store
"""
from __future__ import annotations

from warp_task_tracker.storage.base import TaskStore
from warp_task_tracker.storage.filesystem import JsonFileTaskStore
from warp_task_tracker.storage.locking import FileLock
from warp_task_tracker.storage.memory import InMemoryTaskStore

__all__ = [
    "FileLock",
    "InMemoryTaskStore",
    "JsonFileTaskStore",
    "TaskStore",
]
