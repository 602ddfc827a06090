"""Rich renderables for tasks, history, sessions, and change reports."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Mapping

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from warp_task_tracker.sessions.registry import Session
from warp_task_tracker.sync.reconciler import ChangeReport
from warp_task_tracker.tasks.state import Task, TaskStatus

_BORDER_STYLES = {
    TaskStatus.IN_PROGRESS: "blue",
    TaskStatus.COMPLETED: "green",
    TaskStatus.STOPPED: "yellow",
}

_STATUS_ICONS = {
    TaskStatus.IN_PROGRESS: "▶",
    TaskStatus.COMPLETED: "✔",
    TaskStatus.STOPPED: "■",
}


def progress_bar(percentage: int, length: int = 30) -> Text:
    filled = round(percentage / 100 * length)
    bar = Text("█" * filled, style="green")
    bar.append("░" * (length - filled), style="grey50")
    return bar


def format_duration(duration: timedelta) -> str:
    """Return ``"2h 5m"`` or ``"5m"``."""
    minutes_total = int(duration.total_seconds() // 60)
    hours, minutes = divmod(minutes_total, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def _local_time(moment: datetime) -> str:
    return moment.astimezone().strftime("%H:%M")


def task_panel(task: Task, detailed: bool = False, bar_length: int = 30) -> Panel:
    """Render a task as a bordered box with its progress bar."""
    lines: list[Text] = [Text(task.name, style="bold")]
    if task.description:
        lines.append(Text(task.description, style="dim"))

    bar = progress_bar(task.progress, bar_length)
    bar.append(f" {task.progress}%", style="bold")
    lines.append(bar)
    lines.append(
        Text(
            f"Started: {_local_time(task.start_time)} • "
            f"Duration: {format_duration(task.duration())}"
        )
    )

    if detailed and task.updates:
        lines.append(Text(""))
        lines.append(Text("Recent Updates:", style="dim"))
        for update in task.recent_updates(3):
            suffix = f" - {update.message}" if update.message else ""
            lines.append(Text(f"  {_local_time(update.timestamp)}: {update.progress}%{suffix}"))

    if task.completion_message:
        lines.append(Text(task.completion_message, style="italic green"))

    return Panel(
        Group(*lines),
        border_style=_BORDER_STYLES[task.status],
        padding=(1, 1),
        expand=False,
    )


def compact_line(task: Task) -> Text:
    """One-line rendering used by the ``compact`` display style."""
    line = Text(f"{_STATUS_ICONS[task.status]} {task.name} ")
    line.append(f"{task.progress}%", style="bold")
    line.append(f" ({format_duration(task.duration())})", style="dim")
    return line


def history_table(tasks: Iterable[Task], bar_length: int = 20) -> Table:
    table = Table(title="Recent Task History", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("", justify="center")
    table.add_column("Task", style="bold")
    table.add_column("Progress")
    table.add_column("Duration", justify="right")
    table.add_column("Started")

    for index, task in enumerate(tasks, start=1):
        bar = progress_bar(task.progress, bar_length)
        bar.append(f" {task.progress}%")
        table.add_row(
            str(index),
            _STATUS_ICONS[task.status],
            task.name,
            bar,
            format_duration(task.duration()),
            task.start_time.astimezone().strftime("%Y-%m-%d %H:%M"),
        )
    return table


def sessions_table(sessions: Iterable[Session], bound: Mapping[str, Task]) -> Table:
    table = Table(title="Terminal Sessions", show_lines=False)
    table.add_column("Session", style="cyan")
    table.add_column("Project", style="green")
    table.add_column("Working Directory")
    table.add_column("Task")

    for session in sessions:
        task = bound.get(session.session_id)
        table.add_row(
            session.session_id,
            session.project_name,
            session.working_dir,
            f"{task.name} ({task.progress}%)" if task else "[dim]-[/dim]",
        )
    return table


def change_report_lines(report: ChangeReport) -> list[str]:
    """Return console markup lines describing a tick's changes."""
    lines = [f"[green]+ {task.name}[/green]" for task in report.new_tasks]
    lines.extend(f"[yellow]- {task.name}[/yellow]" for task in report.closed_tasks)
    if report.switched_to is not None:
        lines.append(f"[blue]→ now tracking {report.switched_to.name}[/blue]")
    lines.extend(f"[red]! {failure}[/red]" for failure in report.failures)
    return lines
