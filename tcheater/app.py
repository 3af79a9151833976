from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from rich.console import Console
from rich.table import Table

from . import __version__
from .config import Config, ConfigError, StoreSettings, load_config, load_projects
from .database import SqliteCheckpointStore
from .models import Project
from .paths import ensure_directories, log_path
from .render import dashboard, task_table
from .store import CheckpointStore, StoreError
from .timeline import week_starts
from .tracker import WeekTracker

logger = logging.getLogger(__name__)

HELP_LINES = [
    ("a", "append a checkpoint at the current time"),
    ("s", "split the selected interval in half"),
    ("d", "delete the selected checkpoint"),
    ("l / h", "move the selected checkpoint one quantum later / earlier"),
    ("L / H", "move the following checkpoint one quantum later / earlier"),
    ("n / b", "select next / previous checkpoint"),
    ("j / k", "select next / previous day"),
    ("w", "cycle through the weeks of the month"),
    ("r", "toggle registered"),
    ("m TEXT", "set the comment of the selected checkpoint"),
    ("p [ID]", "assign a project id (same id or no id clears it)"),
    ("t [N]", "fetch the task list / assign task number N"),
    ("R", "reload the week from the store"),
    ("q", "quit"),
]


def configure_logging(path: Path, verbose: bool = False) -> None:
    package_logger = logging.getLogger("tcheater")
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler = RotatingFileHandler(path, maxBytes=2_000_000, backupCount=2, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    package_logger.addHandler(handler)


def build_store(settings: StoreSettings) -> CheckpointStore:
    if settings.backend == "firestore":
        from .firestore import FirestoreCheckpointStore

        return FirestoreCheckpointStore(
            project_id=settings.project_id,
            database_id=settings.database_id,
            collection=settings.collection,
        )
    return SqliteCheckpointStore(settings.path)


class TrackerShell:
    """Reads one command at a time and awaits it before reading the next."""

    def __init__(
        self,
        tracker: WeekTracker,
        console: Console | None = None,
        projects: Sequence[Project] = (),
        task_url_prefix: str | None = None,
    ):
        self.tracker = tracker
        self.console = console or Console()
        self.projects = list(projects)
        self.task_url_prefix = task_url_prefix
        self.running = False
        self._commands: dict[str, Callable[[str], Awaitable[None]]] = {
            "a": lambda _: tracker.append(),
            "s": lambda _: tracker.split(),
            "d": lambda _: tracker.delete(),
            "l": lambda _: tracker.shift_selected(1),
            "h": lambda _: tracker.shift_selected(-1),
            "L": lambda _: tracker.shift_next(1),
            "H": lambda _: tracker.shift_next(-1),
            "n": self._navigate(tracker.select_next_checkpoint),
            "b": self._navigate(tracker.select_prev_checkpoint),
            "j": self._navigate(tracker.select_next_day),
            "k": self._navigate(tracker.select_prev_day),
            "w": lambda _: tracker.cycle_weeks(),
            "r": lambda _: tracker.toggle_registered(),
            "m": tracker.annotate,
            "p": lambda argument: tracker.assign_project(argument.strip() or None),
            "t": self._tasks,
            "R": lambda _: tracker.reload(),
            "q": self._quit,
            "?": self._help,
        }

    async def run(self) -> None:
        self.running = True
        await self.tracker.reload()
        while self.running:
            self.console.print(dashboard(self.tracker, self.projects, self.task_url_prefix))
            try:
                line = await asyncio.to_thread(self.console.input, "[bold]>[/bold] ")
            except (EOFError, KeyboardInterrupt):
                break
            await self.dispatch(line)

    async def dispatch(self, line: str) -> None:
        command, _, argument = line.strip().partition(" ")
        if not command:
            return
        handler = self._commands.get(command)
        if handler is None:
            self.console.print(f"Unknown command {command!r}; '?' lists commands.", style="yellow")
            return
        self.tracker.last_error = None
        await handler(argument)

    def _navigate(self, move: Callable[[], None]) -> Callable[[str], Awaitable[None]]:
        async def handler(_: str) -> None:
            move()

        return handler

    async def _tasks(self, argument: str) -> None:
        if argument.strip():
            try:
                index = int(argument)
            except ValueError:
                self.console.print(f"Not a task number: {argument!r}", style="yellow")
                return
            await self.tracker.assign_task(index)
            return
        tasks = await self.tracker.fetch_tasks()
        if tasks:
            self.console.print(task_table(tasks, self.task_url_prefix))

    async def _quit(self, _: str) -> None:
        self.running = False

    async def _help(self, _: str) -> None:
        table = Table(title="Commands", show_header=False, box=None)
        for keys, description in HELP_LINES:
            table.add_row(keys, description)
        self.console.print(table)


def main(argv: list[str] | None = None) -> int:
    today = date.today()
    parser = argparse.ArgumentParser(prog="tcheater")
    parser.add_argument("month", nargs="?", type=int, choices=range(1, 13), default=today.month)
    parser.add_argument("--year", type=int, default=today.year)
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument("--projects", type=Path, default=None, help="Path to projects.toml")
    parser.add_argument("--verbose", action="store_true", help="Log debug messages")
    parser.add_argument("--version", action="store_true", help="Print app version and exit")
    args = parser.parse_args(argv)
    if args.version:
        print(__version__)
        return 0

    try:
        config: Config = load_config(args.config)
        projects = load_projects(args.projects)
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    ensure_directories()
    configure_logging(log_path(), args.verbose)

    try:
        store = build_store(config.store)
    except StoreError as exc:
        logger.error("Cannot open checkpoint store: %s", exc)
        print(exc, file=sys.stderr)
        return 1

    tracker = WeekTracker(
        store,
        week_starts(args.year, args.month),
        credentials=config.credentials,
        quantum=config.quantum_minutes,
        today=today,
    )
    shell = TrackerShell(tracker, projects=projects, task_url_prefix=config.task_url_prefix)
    asyncio.run(shell.run())
    return 0
