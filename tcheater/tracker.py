"""Week tracker: applies user commands to the in-memory week and the store.

Every mutating command first changes the local :class:`~tcheater.week.Week`
and then issues exactly one store call. A failed store call is logged and
remembered in ``last_error``; the local change is kept and nothing is
retried. :meth:`WeekTracker.reload` replaces the local week with whatever the
store holds.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta
from typing import Sequence

from .config import Credentials
from .models import Checkpoint, Task, Weekday, local_now
from .store import CheckpointStore, StoreError
from .tasks import TaskListError, fetch_tasks
from .timeline import QUANTUM_MINUTES, midpoint, monday_of
from .week import Week

logger = logging.getLogger(__name__)


class WeekTracker:
    def __init__(
        self,
        store: CheckpointStore,
        week_starts: Sequence[date],
        *,
        credentials: Credentials | None = None,
        quantum: int = QUANTUM_MINUTES,
        today: date | None = None,
    ):
        self.store = store
        self.week_starts = list(week_starts)
        self.credentials = credentials
        self.quantum = quantum
        self.week = Week(quantum=quantum)
        self.tasks: list[Task] = []
        self.last_error: str | None = None

        current_monday = monday_of(today or date.today())
        try:
            self.selected_week_index = self.week_starts.index(current_monday)
        except ValueError:
            self.selected_week_index = 0

    @property
    def week_start(self) -> date | None:
        if not self.week_starts:
            return None
        return self.week_starts[self.selected_week_index]

    # ---- Loading ----

    async def reload(self) -> None:
        start = self.week_start
        if start is None:
            logger.warning("No week to load: the month has no week starts")
            self.week = Week(quantum=self.quantum)
            return

        days: dict[Weekday, list[Checkpoint]] = {}
        for weekday in Weekday:
            days[weekday] = await self._load_day(start + timedelta(days=weekday.value))

        self.week = Week(start, days, quantum=self.quantum)
        logger.info(
            "Loaded week of %s: %d checkpoints, %d unregistered",
            start.isoformat(),
            sum(len(checkpoints) for checkpoints in days.values()),
            len(self.week.unregistered),
        )

    async def _load_day(self, day: date) -> list[Checkpoint]:
        try:
            return await self.store.find(day)
        except StoreError as exc:
            self._report(f"Failed to load {day.isoformat()}", exc)
            return []

    async def cycle_weeks(self) -> None:
        if not self.week_starts:
            return
        self.selected_week_index = (self.selected_week_index + 1) % len(self.week_starts)
        await self.reload()

    # ---- Navigation ----

    def select_next_checkpoint(self) -> None:
        self.week.select_next_checkpoint()

    def select_prev_checkpoint(self) -> None:
        self.week.select_prev_checkpoint()

    def select_next_day(self) -> None:
        self.week.select_next_day()

    def select_prev_day(self) -> None:
        self.week.select_prev_day()

    # ---- Commands ----

    async def append(self) -> Checkpoint | None:
        try:
            checkpoint = await self.store.insert(Checkpoint(time=local_now()))
        except StoreError as exc:
            self._report("Failed to insert checkpoint", exc)
            return None
        if self.week.insert_checkpoint(checkpoint) is None:
            logger.info("Checkpoint at %s is outside the displayed week", checkpoint.time.isoformat())
        return checkpoint

    async def split(self) -> None:
        selected = self.week.selected
        following = self.week.next_after_selected
        if selected is None or following is None:
            return
        if following.time - selected.time <= timedelta(0):
            return

        try:
            await self.store.insert(Checkpoint(time=midpoint(selected.time, following.time)))
        except StoreError as exc:
            self._report("Failed to split interval", exc)
        await self.reload()

    async def delete(self) -> None:
        removed = self.week.remove_selected()
        if removed is None:
            return
        try:
            await self.store.delete(removed)
        except StoreError as exc:
            self._report("Failed to delete checkpoint", exc)
        await self.reload()

    async def shift_selected(self, steps: int) -> None:
        await self._shift(self.week.selected, steps)

    async def shift_next(self, steps: int) -> None:
        await self._shift(self.week.next_after_selected, steps)

    async def _shift(self, checkpoint: Checkpoint | None, steps: int) -> None:
        if checkpoint is None or not steps:
            return
        try:
            checkpoint.time = checkpoint.time + timedelta(minutes=self.quantum * steps)
        except OverflowError:
            logger.debug("Shift of %+d quanta out of range; skipped", steps)
            return
        await self._persist(checkpoint)

    async def toggle_registered(self) -> None:
        checkpoint = self.week.selected
        if checkpoint is None:
            return
        checkpoint.registered = not checkpoint.registered
        await self._persist(checkpoint)

    async def assign_project(self, project_id: str | None) -> None:
        checkpoint = self.week.selected
        if checkpoint is None:
            return
        if project_id and checkpoint.project != project_id:
            checkpoint.project = project_id
        else:
            checkpoint.project = None
        await self._persist(checkpoint)

    async def annotate(self, message: str) -> None:
        checkpoint = self.week.selected
        if checkpoint is None:
            return
        checkpoint.message = message.strip() or None
        await self._persist(checkpoint)

    # ---- Task list ----

    async def fetch_tasks(self) -> list[Task]:
        if self.credentials is None:
            self._report("Task list unavailable", TaskListError("no [auth] section configured"))
            return self.tasks
        try:
            self.tasks = await asyncio.to_thread(fetch_tasks, self.credentials)
        except TaskListError as exc:
            self._report("Failed to fetch tasks", exc)
        return self.tasks

    async def assign_task(self, index: int) -> None:
        if not 0 <= index < len(self.tasks):
            return
        await self.assign_project(str(self.tasks[index].id))

    # ---- Internals ----

    async def _persist(self, checkpoint: Checkpoint) -> None:
        try:
            await self.store.update(checkpoint)
        except StoreError as exc:
            self._report("Failed to update checkpoint", exc)

    def _report(self, context: str, exc: Exception) -> None:
        logger.error("%s: %s", context, exc)
        self.last_error = f"{context}: {exc}"
