"""Unit tests for warp_task_tracker.sessions.naming."""
from __future__ import annotations

from datetime import datetime

import pytest

from warp_task_tracker.sessions.naming import (
    GENERAL_PROJECT,
    derive_project_name,
    extract_working_dir,
    format_project_name,
    suggest_task_name,
)

HOME = "/Users/dev"


class TestExtractWorkingDir:
    def test_path_from_title(self) -> None:
        assert extract_working_dir("zsh - ~/code/app", home=HOME) == "~/code/app"

    def test_absolute_path_from_title(self) -> None:
        assert extract_working_dir("vim - notes - /tmp/scratch", home=HOME) == "/tmp/scratch"

    def test_non_path_suffix_falls_back_to_hint(self) -> None:
        assert extract_working_dir("zsh - running", hint="/srv/api", home=HOME) == "/srv/api"

    def test_falls_back_to_home(self) -> None:
        assert extract_working_dir("Warp", home=HOME) == HOME

    def test_empty_title(self) -> None:
        assert extract_working_dir("", hint=None, home=HOME) == HOME


class TestFormatProjectName:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("my-cool_app", "My Cool App"),
            ("api", "Api"),
            ("already Fine", "Already Fine"),
        ],
    )
    def test_format(self, raw: str, expected: str) -> None:
        assert format_project_name(raw) == expected


class TestDeriveProjectName:
    @pytest.mark.parametrize("working_dir", ["", "~", "/", None])
    def test_general_tasks(self, working_dir: str | None) -> None:
        assert derive_project_name(working_dir, home=HOME) == GENERAL_PROJECT

    def test_child_of_container(self) -> None:
        assert derive_project_name("~/code/my-app/src", home=HOME) == "My App"

    def test_deepest_segment(self) -> None:
        assert derive_project_name("/opt/services/billing", home=HOME) == "Billing"

    def test_skips_node_modules(self) -> None:
        assert derive_project_name("/work/site/node_modules", home=HOME) == "Site"

    def test_tilde_expands_home(self) -> None:
        assert derive_project_name("~", home=HOME) == GENERAL_PROJECT
        assert derive_project_name("~/notes", home=HOME) == "Notes"


class TestSuggestTaskName:
    def test_includes_local_time(self) -> None:
        moment = datetime(2024, 6, 1, 14, 5).astimezone()
        assert suggest_task_name("App", moment) == "App Development (14:05)"
