from __future__ import annotations

import hashlib
from typing import Sequence

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import find_project
from .models import Checkpoint, Interval, Project, Task, Weekday
from .timeline import count_quanta, human_duration, rounded_time
from .tracker import WeekTracker

PALETTE_START = 16
PALETTE_SIZE = 216
WHITE = 15


def project_color(checkpoint: Checkpoint, projects: Sequence[Project] = ()) -> int | None:
    """xterm-256 colour index for a checkpoint, ``None`` when it has no message."""
    if checkpoint.message is None:
        return None
    if checkpoint.project is None:
        return WHITE
    project = find_project(projects, checkpoint.project)
    if project is not None and project.color is not None:
        return project.color
    digest = hashlib.sha1(checkpoint.project.encode("utf-8")).digest()
    return PALETTE_START + int.from_bytes(digest[:4], "big") % PALETTE_SIZE


def _style_for(checkpoint: Checkpoint, projects: Sequence[Project]) -> str:
    color = project_color(checkpoint, projects)
    if color is None:
        return "bright_black"
    return f"color({color})"


def _interval_segment(interval: Interval, quantum: int) -> str:
    # One bar per quantum, never fewer than one.
    quanta = count_quanta(rounded_time(interval.start, quantum), rounded_time(interval.end, quantum), quantum)
    return f" {human_duration(interval.minutes)} {'─' * max(quanta, 1)} "


def week_table(tracker: WeekTracker, projects: Sequence[Project] = ()) -> Table:
    week = tracker.week
    title = "Week"
    if week.start is not None:
        title = f"Week of {week.start:%d.%m.%Y}"
    table = Table(title=title, show_header=False, expand=True, box=None)
    table.add_column("day", width=10, no_wrap=True)
    table.add_column("intervals")

    for weekday in Weekday:
        day_date = week.date_of(weekday)
        label = Text(weekday.label)
        if day_date is not None:
            label.append(f" {day_date:%d.%m}")
        if weekday is week.selected_weekday:
            label.stylize("bold underline")

        line = Text()
        checkpoints = week.day(weekday)
        intervals = week.intervals(weekday)
        for index, checkpoint in enumerate(checkpoints):
            selected = weekday is week.selected_weekday and index == week.selected_index
            marker_style = "reverse" if selected else None
            line.append(f"{rounded_time(checkpoint, tracker.quantum):%H:%M}", style=marker_style)
            if index + 1 < len(checkpoints):
                line.append(_interval_segment(intervals[index], tracker.quantum), style=_style_for(checkpoint, projects))
        if not checkpoints:
            line.append("no checkpoints", style="dim")
        table.add_row(label, line)
    return table


def unregistered_panel(tracker: WeekTracker, projects: Sequence[Project] = ()) -> Panel | None:
    entries = tracker.week.unregistered
    if not entries:
        return None
    lines = Text()
    for entry in entries:
        checkpoint = entry.checkpoint
        project = find_project(projects, checkpoint.project)
        lines.append(f"{checkpoint.time:%d.%m %H:%M} ")
        lines.append(project.name if project else (checkpoint.project or "-"), style="bold")
        lines.append(f" ({human_duration(entry.minutes)}) ", style="yellow")
        lines.append(f"{checkpoint.message or ''}\n")
    lines.rstrip()
    return Panel(lines, title="Unregistered Checkpoints")


def details_panel(tracker: WeekTracker, task_url_prefix: str | None = None) -> Panel:
    selected = tracker.week.selected
    if selected is None:
        return Panel(Text("No checkpoint selected", style="dim"), title="Checkpoint")

    lines = Text()
    lines.append(" Started: ", style="grey62")
    lines.append(f"{selected.time:%H:%M} ({rounded_time(selected, tracker.quantum):%H:%M})\n")
    following = tracker.week.next_after_selected
    if following is not None:
        lines.append("Finished: ", style="grey62")
        lines.append(f"{following.time:%H:%M} ({rounded_time(following, tracker.quantum):%H:%M})\n")
    lines.append(" Comment: ", style="grey62")
    lines.append(f"{selected.message or ''}\n", style="green")
    lines.append(" Project: ", style="grey62")
    if task_url_prefix and selected.project:
        lines.append(task_url_prefix, style="grey62")
    lines.append(selected.project or "")
    if selected.registered:
        lines.append("\n  registered", style="cyan")
    return Panel(lines, title="Checkpoint")


def task_table(tasks: Sequence[Task], task_url_prefix: str | None = None) -> Table:
    table = Table(title="Tasks", expand=True)
    table.add_column("#", justify="right")
    table.add_column("id", justify="right")
    table.add_column("name")
    table.add_column("hours")
    for index, task in enumerate(tasks):
        hours = Text()
        if task.spent is not None:
            hours.append(task.spent, style="green")
            if task.total is not None:
                hours.append(" / ")
                hours.append(task.total, style="blue")
        name = Text(task.name)
        if task_url_prefix:
            name.append(f"\n{task_url_prefix}{task.id}", style="blue")
        table.add_row(str(index), str(task.id), name, hours)
    return table


def dashboard(
    tracker: WeekTracker,
    projects: Sequence[Project] = (),
    task_url_prefix: str | None = None,
) -> Group:
    parts = []
    unregistered = unregistered_panel(tracker, projects)
    if unregistered is not None:
        parts.append(unregistered)
    parts.append(week_table(tracker, projects))
    parts.append(details_panel(tracker, task_url_prefix))
    if tracker.last_error:
        parts.append(Text(tracker.last_error, style="red"))
    return Group(*parts)
