"""Unit tests for warp_task_tracker.cli.main.

Uses Click's test runner (CliRunner) with ``--home`` pointed at a
temporary directory, so the real ``~/.warp-tracker`` is never touched.
Session commands run against a ``StaticProbe`` via ``--probe none`` or a
monkeypatched ``_make_probe``.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable

import pytest
import yaml
from click.testing import CliRunner, Result

import warp_task_tracker.cli.main as cli_main
from warp_task_tracker.cli.main import _make_probe, cli
from warp_task_tracker.sessions.probe import RawSession, StaticProbe, WarpAppleScriptProbe
from warp_task_tracker.storage.filesystem import JsonFileTaskStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("WARP_TRACKER_"):
            monkeypatch.delenv(name)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def invoke(runner: CliRunner, tmp_path: Path) -> Callable[..., Result]:
    def _invoke(*args: str) -> Result:
        return runner.invoke(cli, ["--home", str(tmp_path), *args])

    return _invoke


@pytest.fixture()
def store(tmp_path: Path) -> JsonFileTaskStore:
    return JsonFileTaskStore(tmp_path)


# ---------------------------------------------------------------------------
# _make_probe factory
# ---------------------------------------------------------------------------


class TestMakeProbe:
    def test_warp_probe(self) -> None:
        assert isinstance(_make_probe("warp", 2.0), WarpAppleScriptProbe)

    def test_none_probe(self) -> None:
        probe = _make_probe("none", 2.0)
        assert isinstance(probe, StaticProbe)
        assert probe.list_sessions() == []

    def test_unknown_probe_exits(self) -> None:
        with pytest.raises(SystemExit):
            _make_probe("iterm", 2.0)


# ---------------------------------------------------------------------------
# version / help
# ---------------------------------------------------------------------------


class TestVersion:
    def test_version_command(self, invoke: Callable[..., Result]) -> None:
        result = invoke("version")
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("start", "update", "status", "complete", "stop", "watch", "export"):
            assert command in result.output


# ---------------------------------------------------------------------------
# start / update / status
# ---------------------------------------------------------------------------


class TestStart:
    def test_start_persists_task(self, invoke: Callable[..., Result], store: JsonFileTaskStore) -> None:
        result = invoke("start", "Write docs", "-d", "user guide")
        assert result.exit_code == 0
        assert "Started tracking new task" in result.output
        current = store.load().current
        assert current is not None
        assert current.name == "Write docs"
        assert current.description == "user guide"

    def test_start_conflict_shows_blocking_task(self, invoke: Callable[..., Result]) -> None:
        invoke("start", "First")
        result = invoke("start", "Second")
        assert result.exit_code == 1
        assert "already in progress" in result.output
        assert "First" in result.output

    def test_start_blank_name(self, invoke: Callable[..., Result]) -> None:
        result = invoke("start", "   ")
        assert result.exit_code == 1
        assert "Error" in result.output


class TestUpdate:
    def test_update_reports_gain(self, invoke: Callable[..., Result], store: JsonFileTaskStore) -> None:
        invoke("start", "Docs")
        result = invoke("update", "40", "draft done")
        assert result.exit_code == 0
        assert "+40% progress" in result.output
        current = store.load().current
        assert current is not None
        assert current.progress == 40
        assert current.updates[0].message == "draft done"

    def test_second_update_reports_delta(self, invoke: Callable[..., Result]) -> None:
        invoke("start", "Docs")
        invoke("update", "40")
        result = invoke("update", "65")
        assert "+25% progress" in result.output

    def test_update_without_task(self, invoke: Callable[..., Result]) -> None:
        result = invoke("update", "10")
        assert result.exit_code == 1
        assert "No active task" in result.output

    @pytest.mark.parametrize("value", ["101", "-5"])
    def test_update_out_of_range(self, invoke: Callable[..., Result], value: str) -> None:
        invoke("start", "Docs")
        result = invoke("update", "--", value)
        assert result.exit_code == 1
        assert "between 0 and 100" in result.output

    def test_update_not_a_number(self, invoke: Callable[..., Result]) -> None:
        invoke("start", "Docs")
        result = invoke("update", "half")
        assert result.exit_code != 0


class TestStatus:
    def test_no_task(self, invoke: Callable[..., Result]) -> None:
        result = invoke("status")
        assert result.exit_code == 0
        assert "No active task" in result.output

    def test_shows_current(self, invoke: Callable[..., Result]) -> None:
        invoke("start", "Docs")
        invoke("update", "30", "outline")
        result = invoke("status")
        assert result.exit_code == 0
        assert "Docs" in result.output
        assert "30%" in result.output
        assert "outline" in result.output

    def test_compact_style(self, invoke: Callable[..., Result]) -> None:
        invoke("config", "--set", "displayStyle=compact")
        invoke("start", "Docs")
        result = invoke("status")
        assert result.exit_code == 0
        assert "Docs 0%" in result.output

    def test_undecodable_tasks_file(self, invoke: Callable[..., Result], tmp_path: Path) -> None:
        (tmp_path / "tasks.json").write_bytes(b"\xff\xfe garbage \x80")
        result = invoke("status")
        assert result.exit_code == 0
        assert "No active task" in result.output

    def test_invalid_environment_setting(
        self, invoke: Callable[..., Result], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("WARP_TRACKER_SCAN_INTERVAL", "abc")
        result = invoke("status")
        assert result.exit_code == 0
        assert "No active task" in result.output


# ---------------------------------------------------------------------------
# complete / stop / history
# ---------------------------------------------------------------------------


class TestFinish:
    def test_complete(self, invoke: Callable[..., Result], store: JsonFileTaskStore) -> None:
        invoke("start", "Docs")
        result = invoke("complete", "shipped")
        assert result.exit_code == 0
        assert "Task completed" in result.output
        data = store.load()
        assert data.current is None
        assert data.history[0].progress == 100
        assert data.history[0].completion_message == "shipped"

    def test_complete_without_task(self, invoke: Callable[..., Result]) -> None:
        result = invoke("complete")
        assert result.exit_code == 1

    def test_stop(self, invoke: Callable[..., Result], store: JsonFileTaskStore) -> None:
        invoke("start", "Docs")
        invoke("update", "20")
        result = invoke("stop")
        assert result.exit_code == 0
        assert "Task stopped" in result.output
        assert store.load().history[0].progress == 20

    def test_stop_without_task(self, invoke: Callable[..., Result]) -> None:
        assert invoke("stop").exit_code == 1

    def test_history(self, invoke: Callable[..., Result]) -> None:
        for name in ("Alpha", "Beta"):
            invoke("start", name)
            invoke("complete")
        result = invoke("history", "-n", "1")
        assert result.exit_code == 0
        assert "Beta" in result.output
        assert "Alpha" not in result.output

    def test_empty_history(self, invoke: Callable[..., Result]) -> None:
        result = invoke("history")
        assert result.exit_code == 0
        assert "No task history" in result.output


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfig:
    def test_show(self, invoke: Callable[..., Result]) -> None:
        result = invoke("config")
        assert result.exit_code == 0
        assert "displayStyle" in result.output
        assert "progress-bar" in result.output

    def test_set(self, invoke: Callable[..., Result], tmp_path: Path) -> None:
        result = invoke("config", "--set", "notifications=false")
        assert result.exit_code == 0
        assert "notifications = False" in result.output
        document = json.loads((tmp_path / "config.json").read_text(encoding="utf-8"))
        assert document["notifications"] is False

    @pytest.mark.parametrize("assignment", ["bogus", "colour=red", "updateInterval=never"])
    def test_set_invalid(self, invoke: Callable[..., Result], assignment: str) -> None:
        result = invoke("config", "--set", assignment)
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# sessions / watch
# ---------------------------------------------------------------------------


@pytest.fixture()
def static_probe(monkeypatch: pytest.MonkeyPatch) -> StaticProbe:
    probe = StaticProbe(
        [RawSession(session_id="warp_11", title="zsh - ~/code/shop-api", window_id=11)]
    )
    monkeypatch.setattr(cli_main, "_make_probe", lambda name, timeout: probe)
    return probe


class TestSessions:
    def test_no_sessions(self, invoke: Callable[..., Result]) -> None:
        result = invoke("sessions", "--probe", "none")
        assert result.exit_code == 0
        assert "No terminal sessions found" in result.output

    def test_lists_sessions(self, invoke: Callable[..., Result], static_probe: StaticProbe) -> None:
        result = invoke("sessions")
        assert result.exit_code == 0
        assert "warp_11" in result.output
        assert "Shop Api" in result.output

    def test_probe_failure(self, invoke: Callable[..., Result], static_probe: StaticProbe) -> None:
        static_probe.fail_with(RuntimeError("osascript missing"))
        result = invoke("sessions")
        assert result.exit_code == 1
        assert "Could not list terminal sessions" in result.output


class TestWatch:
    def test_once_without_sessions(self, invoke: Callable[..., Result]) -> None:
        result = invoke("watch", "--once", "--probe", "none")
        assert result.exit_code == 0

    def test_once_creates_bound_task(self, invoke: Callable[..., Result], static_probe: StaticProbe) -> None:
        result = invoke("watch", "--once")
        assert result.exit_code == 0
        assert "+ Shop Api Development" in result.output
        assert "warp_11" in result.output

    def test_once_follow_focus_makes_task_current(
        self,
        invoke: Callable[..., Result],
        static_probe: StaticProbe,
        store: JsonFileTaskStore,
    ) -> None:
        static_probe.set_focused("warp_11")
        result = invoke("watch", "--once", "--follow-focus")
        assert result.exit_code == 0
        current = store.load().current
        assert current is not None
        assert current.bound_session_id == "warp_11"

    def test_invalid_interval(self, invoke: Callable[..., Result]) -> None:
        result = invoke("watch", "--probe", "none", "--interval", "0")
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


class TestExport:
    def test_json_to_stdout(self, invoke: Callable[..., Result]) -> None:
        invoke("start", "Docs")
        result = invoke("export")
        assert result.exit_code == 0
        document = json.loads(result.output)
        assert document["schemaVersion"] == "1.0"
        assert document["currentTask"]["name"] == "Docs"

    def test_yaml_to_stdout(self, invoke: Callable[..., Result]) -> None:
        invoke("start", "Docs")
        invoke("complete")
        result = invoke("export", "--format", "yaml")
        assert result.exit_code == 0
        document = yaml.safe_load(result.output)
        assert document["currentTask"] is None
        assert document["history"][0]["status"] == "completed"

    def test_to_file(self, invoke: Callable[..., Result], tmp_path: Path) -> None:
        target = tmp_path / "out" / "tasks.yaml"
        result = invoke("export", "--format", "yaml", "--output", str(target))
        assert result.exit_code == 0
        assert yaml.safe_load(target.read_text(encoding="utf-8"))["history"] == []
