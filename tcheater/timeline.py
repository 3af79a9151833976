from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Sequence

from .models import Checkpoint, Interval

QUANTUM_MINUTES = 15


def round_to_quantum(value: datetime, quantum: int = QUANTUM_MINUTES) -> datetime:
    """Round to the nearest quantum boundary, half a quantum or more rounds up."""
    if quantum <= 0:
        raise ValueError("Quantum must be a positive number of minutes.")
    remainder = value.minute % quantum
    if remainder * 2 >= quantum:
        rounded = value + timedelta(minutes=quantum - remainder)
    else:
        rounded = value - timedelta(minutes=remainder)
    return rounded.replace(second=0, microsecond=0)


def rounded_time(checkpoint: Checkpoint, quantum: int = QUANTUM_MINUTES) -> datetime:
    return round_to_quantum(checkpoint.time, quantum)


def count_quanta(start: datetime, end: datetime, quantum: int = QUANTUM_MINUTES) -> int:
    minutes = _signed_minutes(start, end)
    return int(minutes / quantum)


def duration_minutes(start: datetime, end: datetime, quantum: int = QUANTUM_MINUTES) -> int:
    minutes = _signed_minutes(round_to_quantum(start, quantum), round_to_quantum(end, quantum))
    return max(0, minutes)


def human_duration(minutes: int) -> str:
    total = max(0, int(minutes))
    if total == 0:
        return "0m"

    hours, remainder = divmod(total, 60)
    if not hours:
        return f"{remainder}m"
    if not remainder:
        return f"{hours}h"
    return f"{hours}h{remainder}m"


def build_intervals(
    checkpoints: Sequence[Checkpoint],
    quantum: int = QUANTUM_MINUTES,
) -> list[Interval]:
    if len(checkpoints) < 2:
        return []

    return [
        Interval(
            start=current,
            end=following,
            minutes=duration_minutes(current.time, following.time, quantum),
        )
        for current, following in zip(checkpoints, checkpoints[1:])
    ]


def monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_starts(year: int, month: int) -> list[date]:
    if not 1 <= month <= 12:
        return []

    first_day = date(year, month, 1)
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)

    starts: list[date] = []
    current = monday_of(first_day)
    while current < next_month:
        starts.append(current)
        current += timedelta(days=7)
    return starts


def midpoint(start: datetime, end: datetime) -> datetime:
    return start + (end - start) / 2


def _signed_minutes(start: datetime, end: datetime) -> int:
    seconds = (end - start).total_seconds()
    return int(seconds / 60)
