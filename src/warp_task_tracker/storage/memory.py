"""In-memory task store.

Keeps the tracker document in a Python attribute.  All data is lost when
the process exits.  Primarily useful for tests and embedding.

Classes
-------
- InMemoryTaskStore  — copy-on-read/write ephemeral store
"""
from __future__ import annotations

from warp_task_tracker.storage.base import TaskStore
from warp_task_tracker.tasks.state import TrackerData


class InMemoryTaskStore(TaskStore):
    """Ephemeral store holding a deep copy of the last saved document.

    Copies are taken on both ``load`` and ``save`` so callers can never
    mutate stored state without going through ``save``.

    Parameters
    ----------
    initial_data:
        Optional document to start from.  A deep copy is taken.
    """

    def __init__(self, initial_data: TrackerData | None = None) -> None:
        self._data: TrackerData = (
            initial_data.model_copy(deep=True) if initial_data is not None else TrackerData()
        )
        self.save_count: int = 0

    def load(self) -> TrackerData:
        return self._data.model_copy(deep=True)

    def save(self, data: TrackerData) -> None:
        self._data = data.model_copy(deep=True)
        self.save_count += 1

    def clear(self) -> None:
        """Reset to an empty document."""
        self._data = TrackerData()

    def __repr__(self) -> str:
        current = self._data.current.name if self._data.current else None
        return f"InMemoryTaskStore(current={current!r}, history={len(self._data.history)})"
