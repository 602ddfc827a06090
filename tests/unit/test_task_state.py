"""Unit tests for warp_task_tracker.tasks.state and tasks.errors."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from warp_task_tracker.tasks.errors import (
    ConflictError,
    NotFoundError,
    RangeError,
    TrackerError,
    check_percentage,
)
from warp_task_tracker.tasks.state import (
    SessionInfo,
    Task,
    TaskStatus,
    TaskUpdate,
    TrackerData,
    new_task_id,
)

T0 = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def task() -> Task:
    return Task(name="Write docs", start_time=T0)


# ---------------------------------------------------------------------------
# Ids
# ---------------------------------------------------------------------------


class TestNewTaskId:
    def test_ids_are_unique(self) -> None:
        ids = {new_task_id() for _ in range(200)}
        assert len(ids) == 200

    def test_prefix_is_prepended(self) -> None:
        assert new_task_id(prefix="warp_7").startswith("warp_7_")

    def test_ids_sort_by_creation_time(self) -> None:
        first = new_task_id()
        second = new_task_id()
        assert first[:13] <= second[:13]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestTaskValidation:
    def test_defaults(self, task: Task) -> None:
        assert task.status is TaskStatus.IN_PROGRESS
        assert task.progress == 0
        assert task.updates == []
        assert task.end_time is None
        assert task.is_active
        assert not task.is_bound

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Task(name="   ")

    def test_progress_above_100_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Task(name="x", progress=101)

    def test_completed_requires_end_time(self) -> None:
        with pytest.raises(ValidationError):
            Task(name="x", status=TaskStatus.COMPLETED, progress=100)

    def test_completed_requires_full_progress(self) -> None:
        with pytest.raises(ValidationError):
            Task(name="x", status=TaskStatus.COMPLETED, progress=80, end_time=T0)

    def test_stopped_keeps_partial_progress(self) -> None:
        task = Task(name="x", status=TaskStatus.STOPPED, progress=40, end_time=T0)
        assert task.progress == 40

    def test_update_progress_bounds(self) -> None:
        with pytest.raises(ValidationError):
            TaskUpdate(progress=-1)

    def test_status_terminal_flags(self) -> None:
        assert not TaskStatus.IN_PROGRESS.is_terminal
        assert TaskStatus.COMPLETED.is_terminal
        assert TaskStatus.STOPPED.is_terminal


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestTaskTransitions:
    def test_record_update_returns_previous(self, task: Task) -> None:
        assert task.record_update(30, "first", now=T0) == 0
        assert task.record_update(70, now=T0) == 30
        assert task.progress == 70
        assert [u.progress for u in task.updates] == [30, 70]
        assert task.updates[0].message == "first"

    def test_record_update_accepts_decrease(self, task: Task) -> None:
        task.record_update(60)
        task.record_update(20)
        assert task.progress == 20

    @pytest.mark.parametrize("value", [-1, 101, 150])
    def test_record_update_out_of_range(self, task: Task, value: int) -> None:
        with pytest.raises(RangeError):
            task.record_update(value)
        assert task.updates == []

    def test_mark_completed_forces_full_progress(self, task: Task) -> None:
        task.record_update(40)
        task.mark_completed("done", now=T0 + timedelta(hours=1))
        assert task.status is TaskStatus.COMPLETED
        assert task.progress == 100
        assert task.completion_message == "done"
        assert task.end_time == T0 + timedelta(hours=1)

    def test_mark_stopped_keeps_progress(self, task: Task) -> None:
        task.record_update(40)
        task.mark_stopped(now=T0)
        assert task.status is TaskStatus.STOPPED
        assert task.progress == 40

    def test_terminal_task_rejects_update(self, task: Task) -> None:
        task.mark_stopped()
        with pytest.raises(ConflictError) as excinfo:
            task.record_update(50)
        assert excinfo.value.task is task

    def test_terminal_task_rejects_second_completion(self, task: Task) -> None:
        task.mark_completed()
        with pytest.raises(ConflictError):
            task.mark_completed()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestTaskQueries:
    def test_duration_while_active(self, task: Task) -> None:
        assert task.duration(now=T0 + timedelta(minutes=90)) == timedelta(minutes=90)

    def test_duration_after_end_ignores_now(self, task: Task) -> None:
        task.mark_stopped(now=T0 + timedelta(minutes=5))
        assert task.duration(now=T0 + timedelta(days=1)) == timedelta(minutes=5)

    def test_duration_never_negative(self, task: Task) -> None:
        assert task.duration(now=T0 - timedelta(minutes=5)) == timedelta(0)

    def test_recent_updates(self, task: Task) -> None:
        for value in (10, 20, 30, 40):
            task.record_update(value)
        assert [u.progress for u in task.recent_updates(3)] == [20, 30, 40]
        assert task.recent_updates(0) == []


# ---------------------------------------------------------------------------
# Document layout
# ---------------------------------------------------------------------------


class TestTrackerDocument:
    def test_document_uses_camel_case_keys(self, task: Task) -> None:
        task.bound_session_id = "warp_1"
        task.session_info = SessionInfo(window_id=1, project_name="App", working_dir="~/code/app")
        document = TrackerData(current=task).to_document()
        assert set(document) == {"currentTask", "history"}
        current = document["currentTask"]
        assert current["startTime"].startswith("2024-06-01")
        assert current["endTime"] is None
        assert current["sessionId"] == "warp_1"
        assert current["sessionInfo"]["windowId"] == 1
        assert current["status"] == "in-progress"

    def test_accepts_camel_case_input(self) -> None:
        data = TrackerData.model_validate(
            {
                "currentTask": {
                    "id": "1",
                    "name": "Legacy",
                    "startTime": "2024-06-01T09:00:00Z",
                    "progress": 10,
                    "status": "in-progress",
                    "updates": [{"timestamp": "2024-06-01T09:05:00Z", "progress": 10, "message": ""}],
                },
                "history": [],
            }
        )
        assert data.current is not None
        assert data.current.name == "Legacy"
        assert data.current.updates[0].progress == 10


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_family(self) -> None:
        assert issubclass(ConflictError, TrackerError)
        assert issubclass(NotFoundError, LookupError)
        assert issubclass(RangeError, ValueError)

    def test_not_found_carries_session_id(self) -> None:
        error = NotFoundError("missing", session_id="warp_3")
        assert error.session_id == "warp_3"

    @pytest.mark.parametrize("value", [0, 55, 100])
    def test_check_percentage_accepts(self, value: int) -> None:
        assert check_percentage(value) == value

    @pytest.mark.parametrize("value", [-1, 101, True, 50.5, "50"])
    def test_check_percentage_rejects(self, value: object) -> None:
        with pytest.raises(RangeError) as excinfo:
            check_percentage(value)  # type: ignore[arg-type]
        assert excinfo.value.percentage == value
