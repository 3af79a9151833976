from __future__ import annotations

import bisect
from datetime import date, timedelta
from typing import Mapping, Sequence

from .models import Checkpoint, Interval, UnregisteredEntry, Weekday
from .timeline import QUANTUM_MINUTES, build_intervals, duration_minutes


def build_unregistered(
    days: Mapping[Weekday, Sequence[Checkpoint]],
    quantum: int = QUANTUM_MINUTES,
) -> list[UnregisteredEntry]:
    """Collect every closed, unregistered interval of the week.

    The last checkpoint of a day is the open boundary of ongoing work and is
    never reported, whatever its flag says.
    """
    entries: list[UnregisteredEntry] = []
    for weekday in Weekday:
        checkpoints = days.get(weekday, ())
        for current, following in zip(checkpoints, checkpoints[1:]):
            if current.registered:
                continue
            entries.append(
                UnregisteredEntry(
                    checkpoint=current,
                    minutes=duration_minutes(current.time, following.time, quantum),
                )
            )
    return entries


class Week:
    """Five ordered day lists plus the (weekday, index) selection cursor."""

    def __init__(
        self,
        start: date | None = None,
        days: Mapping[Weekday, Sequence[Checkpoint]] | None = None,
        quantum: int = QUANTUM_MINUTES,
    ):
        self.start = start
        self.quantum = quantum
        source = days or {}
        self._days: dict[Weekday, list[Checkpoint]] = {
            weekday: sorted(source.get(weekday, ()), key=lambda checkpoint: checkpoint.time)
            for weekday in Weekday
        }
        self.unregistered = build_unregistered(self._days, quantum)
        self._selected_weekday = Weekday.MON
        self.selected_index = 0

    # ---- Day lists ----

    def day(self, weekday: Weekday | int) -> list[Checkpoint]:
        return self._days[Weekday.validate(weekday)]

    def date_of(self, weekday: Weekday | int) -> date | None:
        if self.start is None:
            return None
        return self.start + timedelta(days=Weekday.validate(weekday).value)

    def intervals(self, weekday: Weekday | int) -> list[Interval]:
        return build_intervals(self.day(weekday), self.quantum)

    @property
    def selected_weekday(self) -> Weekday:
        return self._selected_weekday

    @selected_weekday.setter
    def selected_weekday(self, value: Weekday | int) -> None:
        self._selected_weekday = Weekday.validate(value)
        self._clamp_index()

    @property
    def active_day(self) -> list[Checkpoint]:
        return self._days[self._selected_weekday]

    @property
    def has_selection(self) -> bool:
        return self.selected_index < len(self.active_day)

    @property
    def selected(self) -> Checkpoint | None:
        day = self.active_day
        if self.selected_index < len(day):
            return day[self.selected_index]
        return None

    @property
    def next_after_selected(self) -> Checkpoint | None:
        day = self.active_day
        if self.selected_index + 1 < len(day):
            return day[self.selected_index + 1]
        return None

    # ---- Mutation ----

    def append_checkpoint(self, checkpoint: Checkpoint) -> None:
        self._insert_sorted(self._selected_weekday, checkpoint)

    def insert_checkpoint(self, checkpoint: Checkpoint) -> Weekday | None:
        """Insert into the day list matching the checkpoint's own date.

        Returns the weekday used, or ``None`` when the date is not a weekday
        of this week; the week is then left untouched.
        """
        day = checkpoint.time.date()
        for weekday in Weekday:
            if self.date_of(weekday) == day:
                self._insert_sorted(weekday, checkpoint)
                return weekday
        return None

    def remove_selected(self) -> Checkpoint | None:
        checkpoint = self.selected
        if checkpoint is None:
            return None
        del self.active_day[self.selected_index]
        self._clamp_index()
        self.unregistered = build_unregistered(self._days, self.quantum)
        return checkpoint

    def _insert_sorted(self, weekday: Weekday, checkpoint: Checkpoint) -> None:
        checkpoints = self._days[weekday]
        position = bisect.bisect_right([existing.time for existing in checkpoints], checkpoint.time)
        checkpoints.insert(position, checkpoint)
        # Keep the cursor on the same checkpoint.
        if weekday is self._selected_weekday and position <= self.selected_index < len(checkpoints) - 1:
            self.selected_index += 1
        self.unregistered = build_unregistered(self._days, self.quantum)

    # ---- Navigation ----

    def select_next_checkpoint(self) -> None:
        # The open, last checkpoint of a day is not selectable by moving forward.
        if self.selected_index + 2 < len(self.active_day):
            self.selected_index += 1

    def select_prev_checkpoint(self) -> None:
        self.selected_index = max(0, self.selected_index - 1)

    def select_next_day(self) -> None:
        self._selected_weekday = self._selected_weekday.next()
        self._clamp_index()

    def select_prev_day(self) -> None:
        self._selected_weekday = self._selected_weekday.prev()
        self._clamp_index()

    def _clamp_index(self) -> None:
        length = len(self.active_day)
        if length == 0:
            self.selected_index = 0
        elif self.selected_index > length - 1:
            self.selected_index = max(length - 2, 0)
