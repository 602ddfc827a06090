"""Heuristics turning a window into human-friendly names.

Functions
---------
- extract_working_dir  — best-effort directory from title or probe hint
- derive_project_name  — project name from a working directory
- format_project_name  — ``my-cool_app`` → ``My Cool App``
- suggest_task_name    — ``"<Project> Development (HH:MM)"``
"""
from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

GENERAL_PROJECT = "General Tasks"
UNKNOWN_PROJECT = "Unknown Project"

# Directory names that never name a project on their own.
SKIPPED_DIRS: frozenset[str] = frozenset({"src", "lib", "bin", "node_modules", ".git"})

# Folders whose direct child is usually a project checkout.
CONTAINER_DIRS: frozenset[str] = frozenset(
    {"src", "projects", "code", "development", "dev", "work"}
)

_TITLE_SEPARATOR = " - "
_WORD_START = re.compile(r"\b\w")


def _home(home: str | Path | None) -> str:
    return str(home) if home is not None else str(Path.home())


def extract_working_dir(
    title: str,
    hint: str | None = None,
    home: str | Path | None = None,
) -> str:
    """Return the most plausible working directory for a window.

    A title of the form ``"zsh - ~/code/app"`` wins when its last part
    looks like a path; otherwise the probe's hint, then the home directory.
    """
    if title and _TITLE_SEPARATOR in title:
        candidate = title.split(_TITLE_SEPARATOR)[-1].strip()
        if candidate.startswith(("/", "~")):
            return candidate
    if hint:
        return hint
    return _home(home) or "~"


def format_project_name(name: str) -> str:
    spaced = name.replace("-", " ").replace("_", " ")
    return _WORD_START.sub(lambda match: match.group(0).upper(), spaced).strip()


def derive_project_name(working_dir: str | None, home: str | Path | None = None) -> str:
    """Derive a display project name from ``working_dir``.

    Segments are walked from the deepest upward.  Names in
    ``SKIPPED_DIRS`` are passed over; a segment sitting directly under one
    of ``CONTAINER_DIRS`` is taken as the project; the deepest segment is
    taken when it is not skipped.  Empty, ``~`` and ``/`` map to
    ``"General Tasks"``.
    """
    if not working_dir or working_dir in ("~", "/"):
        return GENERAL_PROJECT

    path = working_dir
    if path.startswith("~"):
        path = _home(home) + path[1:]
    parts = [part for part in path.split("/") if part]
    if not parts:
        return GENERAL_PROJECT

    last = len(parts) - 1
    for index in range(last, -1, -1):
        part = parts[index]
        if part in SKIPPED_DIRS:
            continue
        if index > 0 and parts[index - 1] in CONTAINER_DIRS:
            return format_project_name(part)
        if index == last:
            return format_project_name(part)

    return format_project_name(parts[last]) or UNKNOWN_PROJECT


def suggest_task_name(project_name: str, now: datetime | None = None) -> str:
    """Return ``"<project> Development (HH:MM)"`` in local time."""
    moment = (now or datetime.now()).astimezone()
    return f"{project_name} Development ({moment:%H:%M})"
