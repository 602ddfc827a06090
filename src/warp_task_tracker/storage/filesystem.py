"""JSON file task store.

Persists the tracker document as ``<storage_dir>/tasks.json``, the layout
shared with earlier tracker releases.  Defaults to
``~/.warp-tracker/``.

Writes go to a temporary sibling file that is then moved over the
document with ``os.replace``, under an advisory ``FileLock``, so readers
never observe a partially written file.

Classes
-------
- JsonFileTaskStore  — single-document JSON storage
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from warp_task_tracker.storage.base import TaskStore
from warp_task_tracker.storage.locking import FileLock
from warp_task_tracker.tasks.errors import StoreError
from warp_task_tracker.tasks.serializer import TrackerSerializer
from warp_task_tracker.tasks.state import TrackerData

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DIR: Path = Path.home() / ".warp-tracker"
DATA_FILE_NAME = "tasks.json"


class JsonFileTaskStore(TaskStore):
    """Stores the tracker document as one JSON file.

    Parameters
    ----------
    storage_dir:
        Directory holding ``tasks.json``.  Created on first save.
    serializer:
        Optional custom serializer.
    lock_timeout:
        Seconds to wait for the write lock before failing with
        ``StoreError``.
    """

    def __init__(
        self,
        storage_dir: str | Path | None = None,
        serializer: TrackerSerializer | None = None,
        lock_timeout: float = 10.0,
    ) -> None:
        self._storage_dir: Path = (
            Path(storage_dir) if storage_dir is not None else DEFAULT_STORAGE_DIR
        )
        self._serializer = serializer or TrackerSerializer()
        self._lock_timeout = lock_timeout

    @property
    def path(self) -> Path:
        return self._storage_dir / DATA_FILE_NAME

    def _lock(self) -> FileLock:
        return FileLock(self.path.with_name(DATA_FILE_NAME + ".lock"), timeout=self._lock_timeout)

    # ------------------------------------------------------------------
    # TaskStore interface
    # ------------------------------------------------------------------

    def load(self) -> TrackerData:
        """Read ``tasks.json``.

        A missing file yields an empty document.  An unparsable file is
        logged and also treated as empty, so the next save replaces it.

        Raises
        ------
        StoreError
            If the file exists but cannot be read.
        """
        path = self.path
        if not path.exists():
            return TrackerData()
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise StoreError(f"Could not read {path}: {exc}") from exc
        try:
            return self._serializer.from_json(raw.decode("utf-8"))
        except (ValueError, ValidationError) as exc:
            logger.warning("Ignoring unreadable tracker document %s: %s", path, exc)
            return TrackerData()

    def save(self, data: TrackerData) -> None:
        """Atomically replace ``tasks.json`` with ``data``.

        Raises
        ------
        StoreError
            If the directory cannot be created, the lock cannot be taken,
            or the write fails.
        """
        payload = self._serializer.to_json(data)
        try:
            self._storage_dir.mkdir(parents=True, exist_ok=True)
            with self._lock():
                self._write_atomic(payload)
        except (OSError, TimeoutError) as exc:
            raise StoreError(f"Could not save {self.path}: {exc}") from exc
        logger.debug("JsonFileTaskStore: saved %s", self.path)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write_atomic(self, payload: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=".tasks-", suffix=".tmp", dir=self._storage_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def initialize(self) -> None:
        """Write an empty document if none exists yet."""
        if not self.path.exists():
            self.save(TrackerData())

    def __repr__(self) -> str:
        return f"JsonFileTaskStore(storage_dir={str(self._storage_dir)!r})"
