"""Abstract base class for task stores.

A store persists one ``TrackerData`` document: the current task and the
ordered history.  It exposes ``load`` and ``save`` only; all state
transitions belong to ``TaskLifecycle``.

Classes
-------
- TaskStore  — abstract base for all stores
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from warp_task_tracker.tasks.state import TrackerData


class TaskStore(ABC):
    """Durable home of the tracker document.

    Implementations must make ``save`` atomic from the perspective of a
    concurrent ``load``: a reader sees either the previous document or the
    new one, never a partial write.  Serialising read-modify-write cycles
    is the caller's job (``TaskLifecycle`` holds a lock for that).
    """

    @abstractmethod
    def load(self) -> TrackerData:
        """Return the stored document, or an empty one if nothing is stored.

        Raises
        ------
        StoreError
            If the backing medium cannot be read.
        """

    @abstractmethod
    def save(self, data: TrackerData) -> None:
        """Replace the stored document with ``data``.

        Raises
        ------
        StoreError
            If the write fails.  The previous document is left in place.
        """
