"""CLI entry point for warp-task-tracker.

Invoked as::

    warp-tracker [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m warp_task_tracker.cli.main

Commands
--------
- start     — Start tracking a new task
- update    — Record progress on the current task
- status    — Show the current task
- complete  — Complete the current task
- stop      — Stop the current task without completing it
- history   — Show recently finished tasks
- config    — Show or change configuration
- sessions  — List open terminal sessions
- watch     — Auto-create and retire tasks as sessions open and close
- export    — Dump the tracker document as JSON or YAML
- version   — Show version information
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console

from warp_task_tracker.config import ConfigError, ConfigManager, TrackerSettings, tracker_home
from warp_task_tracker.convenience import Tracker
from warp_task_tracker.sessions.probe import SessionProbe, StaticProbe, WarpAppleScriptProbe
from warp_task_tracker.sync.reconciler import ChangeReport
from warp_task_tracker.sync.scheduler import ReconcilerLoop
from warp_task_tracker.tasks.errors import ConflictError, TrackerError
from warp_task_tracker.tasks.events import ConsoleNotifier, Notifier
from warp_task_tracker.tasks.serializer import TrackerSerializer
from warp_task_tracker.tasks.state import Task
from warp_task_tracker.cli.render import (
    change_report_lines,
    compact_line,
    history_table,
    sessions_table,
    task_panel,
)

console = Console()

# ---------------------------------------------------------------------------
# Factories and helpers
# ---------------------------------------------------------------------------


def _make_probe(name: str, timeout: float) -> SessionProbe:
    """Instantiate the requested session probe.

    Parameters
    ----------
    name:
        ``"warp"`` for the macOS Warp probe or ``"none"`` for an empty probe.
    timeout:
        Per-call timeout forwarded to probes that shell out.
    """
    if name == "warp":
        return WarpAppleScriptProbe(timeout=timeout)
    if name == "none":
        return StaticProbe()
    console.print(f"[red]Unknown session probe: {name!r}[/red]")
    sys.exit(1)


def _home(ctx: click.Context) -> Path:
    return ctx.obj["home"]


def _tracker(ctx: click.Context, probe: SessionProbe | None = None, **kwargs: object) -> Tracker:
    home = _home(ctx)
    settings = ConfigManager(home).load()
    notifiers: list[Notifier] = [ConsoleNotifier()] if settings.notifications else []
    return Tracker.from_home(home, probe=probe, notifiers=notifiers, **kwargs)


def _show_task(task: Task, settings: TrackerSettings, detailed: bool = False) -> None:
    if settings.display_style == "compact":
        console.print(compact_line(task))
    else:
        console.print(task_panel(task, detailed=detailed, bar_length=settings.progress_bar_length))


def _fail(message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    sys.exit(1)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="[%(levelname)s] %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="warp-task-tracker")
@click.option(
    "--home",
    "home_dir",
    default=None,
    envvar="WARP_TRACKER_HOME",
    type=click.Path(file_okay=False),
    help="Directory holding tasks.json and config.json (default ~/.warp-tracker).",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (defaults to the logLevel setting).",
)
@click.pass_context
def cli(ctx: click.Context, home_dir: str | None, log_level: str | None) -> None:
    """Track task completion progress from your terminal"""
    ctx.ensure_object(dict)
    home = Path(home_dir).expanduser() if home_dir else tracker_home()
    ctx.obj["home"] = home
    _configure_logging(log_level or ConfigManager(home).load().log_level)


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from warp_task_tracker import __version__

    console.print(f"[bold]warp-task-tracker[/bold] v{__version__}")


# ---------------------------------------------------------------------------
# Manual task commands
# ---------------------------------------------------------------------------


@cli.command(name="start")
@click.argument("name")
@click.option("-d", "--description", default="", help="Longer description of the task.")
@click.pass_context
def start_command(ctx: click.Context, name: str, description: str) -> None:
    """Start tracking a new task called NAME."""
    tracker = _tracker(ctx)
    try:
        task = tracker.lifecycle.start(name, description)
    except ConflictError as exc:
        console.print("[yellow]A task is already in progress:[/yellow]")
        if exc.task is not None:
            _show_task(exc.task, tracker.settings)
        console.print("[yellow]Please complete or stop the current task first.[/yellow]")
        sys.exit(1)
    except (TrackerError, ValueError) as exc:
        _fail(f"Error: {exc}")

    console.print("[green]Started tracking new task:[/green]")
    _show_task(task, tracker.settings)


@cli.command(name="update")
@click.argument("percentage", type=int)
@click.argument("message", required=False, default="")
@click.pass_context
def update_command(ctx: click.Context, percentage: int, message: str) -> None:
    """Set the current task's progress to PERCENTAGE (0-100)."""
    tracker = _tracker(ctx)
    try:
        task = tracker.lifecycle.update(percentage, message)
    except TrackerError as exc:
        _fail(f"Error: {exc}")

    console.print("[blue]Progress updated:[/blue]")
    _show_task(task, tracker.settings)
    previous = task.updates[-2].progress if len(task.updates) > 1 else 0
    change = percentage - previous
    if change > 0:
        console.print(f"[green]+{change}% progress[/green]")


@cli.command(name="status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """Show the current task."""
    tracker = _tracker(ctx)
    try:
        task = tracker.lifecycle.status()
    except TrackerError as exc:
        _fail(f"Error: {exc}")

    if task is None:
        console.print('[yellow]No active task. Start tracking with: warp-tracker start "Task name"[/yellow]')
        return
    console.print("[blue]Current Task Status:[/blue]")
    _show_task(task, tracker.settings, detailed=True)


@cli.command(name="complete")
@click.argument("message", required=False, default="")
@click.pass_context
def complete_command(ctx: click.Context, message: str) -> None:
    """Mark the current task as completed."""
    tracker = _tracker(ctx)
    try:
        task = tracker.lifecycle.complete(message)
    except TrackerError as exc:
        _fail(f"Error: {exc}")

    console.print("[green]Task completed![/green]")
    _show_task(task, tracker.settings)


@cli.command(name="stop")
@click.pass_context
def stop_command(ctx: click.Context) -> None:
    """Stop the current task and save it to history."""
    tracker = _tracker(ctx)
    try:
        task = tracker.lifecycle.stop()
    except TrackerError as exc:
        _fail(f"Error: {exc}")

    console.print(f"[yellow]Task stopped and saved to history:[/yellow] {task.name} ({task.progress}%)")


@cli.command(name="history")
@click.option("-n", "--count", default=10, show_default=True, help="Number of tasks to show.")
@click.pass_context
def history_command(ctx: click.Context, count: int) -> None:
    """Show recently finished tasks."""
    tracker = _tracker(ctx)
    try:
        tasks = tracker.lifecycle.history(count)
    except TrackerError as exc:
        _fail(f"Error: {exc}")

    if not tasks:
        console.print("[yellow]No task history found.[/yellow]")
        return
    console.print(history_table(tasks))


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@cli.command(name="config")
@click.option("--set", "assignment", default=None, help="Set a value, e.g. --set notifications=false")
@click.pass_context
def config_command(ctx: click.Context, assignment: str | None) -> None:
    """Show or change configuration."""
    manager = ConfigManager(_home(ctx))
    if assignment:
        try:
            key, value = manager.set_value(assignment)
        except ConfigError as exc:
            _fail(str(exc))
        console.print(f"[green]Configuration updated:[/green] {key} = {value}")
        return

    console.print("[blue]Current Configuration:[/blue]")
    for key, value in manager.load().to_file_dict().items():
        console.print(f"  {key}: [cyan]{value}[/cyan]")


# ---------------------------------------------------------------------------
# Session commands
# ---------------------------------------------------------------------------

_probe_option = click.option(
    "--probe",
    "probe_name",
    default="warp",
    show_default=True,
    type=click.Choice(["warp", "none"], case_sensitive=False),
    help="Where to discover terminal sessions.",
)


@cli.command(name="sessions")
@_probe_option
@click.pass_context
def sessions_command(ctx: click.Context, probe_name: str) -> None:
    """List open terminal sessions."""
    settings = ConfigManager(_home(ctx)).load()
    tracker = _tracker(ctx, probe=_make_probe(probe_name.lower(), settings.probe_timeout))
    diff = tracker.registry.poll()
    if diff.probe_failed:
        _fail("Could not list terminal sessions.")
    if not diff.current:
        console.print("[yellow]No terminal sessions found.[/yellow]")
        return
    console.print(sessions_table(diff.current, tracker.lifecycle.bound_tasks()))


def _print_report(report: ChangeReport) -> None:
    for line in change_report_lines(report):
        console.print(line)


@cli.command(name="watch")
@_probe_option
@click.option("--interval", type=float, default=None, help="Seconds between scans (default scanInterval).")
@click.option("--once", is_flag=True, help="Run a single scan and exit.")
@click.option("--follow-focus", is_flag=True, help="Make the focused session's task current.")
@click.pass_context
def watch_command(
    ctx: click.Context,
    probe_name: str,
    interval: float | None,
    once: bool,
    follow_focus: bool,
) -> None:
    """Create and retire tasks automatically as sessions open and close."""
    settings = ConfigManager(_home(ctx)).load()
    probe = _make_probe(probe_name.lower(), settings.probe_timeout)
    tracker = _tracker(ctx, probe=probe, follow_focus=follow_focus)
    tracker.reconciler.add_consumer(_print_report)

    if once:
        report = tracker.reconciler.tick()
        if report is not None and report.all_sessions:
            console.print(sessions_table(report.all_sessions, tracker.lifecycle.bound_tasks()))
        return

    if interval is not None and interval <= 0:
        _fail("--interval must be positive.")
    loop = ReconcilerLoop(tracker.reconciler, interval=interval or settings.scan_interval)
    console.print(f"[blue]Watching terminal sessions every {loop.interval:g}s. Press Ctrl+C to stop.[/blue]")
    loop.start()
    try:
        loop.wait()
    except KeyboardInterrupt:
        pass
    finally:
        loop.stop()
    console.print("[dim]Stopped watching.[/dim]")


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@cli.command(name="export")
@click.option(
    "--format",
    "fmt",
    default="json",
    show_default=True,
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    help="Output format.",
)
@click.option("--output", "output_file", default=None, type=click.Path(dir_okay=False), help="Write to a file instead of stdout.")
@click.pass_context
def export_command(ctx: click.Context, fmt: str, output_file: str | None) -> None:
    """Dump the current task and history."""
    tracker = _tracker(ctx)
    try:
        data = tracker.lifecycle.snapshot()
    except TrackerError as exc:
        _fail(f"Error: {exc}")

    serializer = TrackerSerializer()
    text = serializer.to_yaml(data) if fmt.lower() == "yaml" else serializer.to_json(data)
    if output_file is None:
        click.echo(text)
        return
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    console.print(f"[green]Exported ({fmt}):[/green] {output_file}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    cli()
