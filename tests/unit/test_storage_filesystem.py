"""Unit tests for warp_task_tracker.storage.filesystem.JsonFileTaskStore.

All tests use pytest's ``tmp_path`` fixture so they never touch the real
home directory.
"""
from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from warp_task_tracker.storage.filesystem import JsonFileTaskStore
from warp_task_tracker.tasks.errors import StoreError
from warp_task_tracker.tasks.lifecycle import TaskLifecycle
from warp_task_tracker.tasks.state import Task, TrackerData


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store(tmp_path: Path) -> JsonFileTaskStore:
    return JsonFileTaskStore(storage_dir=tmp_path / "tracker")


# ---------------------------------------------------------------------------
# load / save
# ---------------------------------------------------------------------------


class TestLoadSave:
    def test_missing_file_is_empty(self, store: JsonFileTaskStore) -> None:
        data = store.load()
        assert data.current is None
        assert data.history == []
        assert not store.path.exists()

    def test_save_creates_directory(self, store: JsonFileTaskStore) -> None:
        store.save(TrackerData(current=Task(name="A")))
        assert store.path.exists()
        assert store.path.name == "tasks.json"

    def test_round_trip(self, store: JsonFileTaskStore) -> None:
        task = Task(name="A")
        task.record_update(20, "started")
        store.save(TrackerData(current=task))
        loaded = store.load()
        assert loaded.current == task

    def test_file_uses_camel_case_layout(self, store: JsonFileTaskStore) -> None:
        store.save(TrackerData(current=Task(name="A")))
        document = json.loads(store.path.read_text(encoding="utf-8"))
        assert document["schemaVersion"] == "1.0"
        assert "currentTask" in document
        assert "startTime" in document["currentTask"]

    def test_reads_document_without_version(self, store: JsonFileTaskStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text(
            json.dumps(
                {
                    "currentTask": {
                        "id": "1718000000000",
                        "name": "Legacy",
                        "description": "",
                        "startTime": "2024-06-10T06:13:20.000Z",
                        "progress": 0,
                        "status": "in-progress",
                        "updates": [],
                    },
                    "history": [],
                }
            ),
            encoding="utf-8",
        )
        loaded = store.load()
        assert loaded.current is not None and loaded.current.name == "Legacy"

    def test_corrupt_file_is_empty(self, store: JsonFileTaskStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")
        assert store.load().current is None

    def test_invalid_utf8_file_is_empty(self, store: JsonFileTaskStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(b"\xff\xfe garbage \x80")
        loaded = store.load()
        assert loaded.current is None
        assert loaded.history == []

    def test_corrupt_file_replaced_on_save(self, store: JsonFileTaskStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text("[]", encoding="utf-8")
        store.save(TrackerData(current=Task(name="fresh")))
        loaded = store.load()
        assert loaded.current is not None and loaded.current.name == "fresh"

    def test_no_temporary_files_left(self, store: JsonFileTaskStore) -> None:
        store.save(TrackerData())
        store.save(TrackerData(current=Task(name="A")))
        names = sorted(p.name for p in store.path.parent.iterdir())
        assert names == ["tasks.json"]

    def test_initialize(self, store: JsonFileTaskStore) -> None:
        store.initialize()
        assert store.path.exists()
        store.save(TrackerData(current=Task(name="A")))
        store.initialize()
        assert store.load().current is not None

    def test_repr(self, store: JsonFileTaskStore) -> None:
        assert "JsonFileTaskStore" in repr(store)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_save_into_file_path_raises_store_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        store = JsonFileTaskStore(storage_dir=blocker / "nested")
        with pytest.raises(StoreError):
            store.save(TrackerData())

    def test_lock_timeout_raises_store_error(self, store: JsonFileTaskStore) -> None:
        store.path.parent.mkdir(parents=True)
        lock_path = store.path.with_name("tasks.json.lock")
        lock_path.write_text("", encoding="utf-8")
        impatient = JsonFileTaskStore(storage_dir=store.path.parent, lock_timeout=0.1)
        with pytest.raises(StoreError):
            impatient.save(TrackerData())
        assert not store.path.exists()

    def test_unreadable_path_raises_store_error(self, store: JsonFileTaskStore) -> None:
        store.path.mkdir(parents=True)
        with pytest.raises(StoreError):
            store.load()


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrentWrites:
    def test_threads_sharing_lifecycle(self, store: JsonFileTaskStore) -> None:
        lifecycle = TaskLifecycle(store)
        lifecycle.start("Shared")

        def worker(value: int) -> None:
            lifecycle.update(value)

        threads = [threading.Thread(target=worker, args=(v,)) for v in range(0, 100, 10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        current = store.load().current
        assert current is not None
        assert len(current.updates) == 10
        assert current.progress == current.updates[-1].progress
