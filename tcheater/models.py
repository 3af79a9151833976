from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping


class UnsupportedWeekdayError(ValueError):
    """Raised for Saturday, Sunday or anything else outside Monday-Friday."""


class Weekday(Enum):
    MON = 0
    TUE = 1
    WED = 2
    THU = 3
    FRI = 4

    @classmethod
    def validate(cls, value: Weekday | int) -> Weekday:
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        raise UnsupportedWeekdayError(f"Unsupported weekday: {value!r}")

    @classmethod
    def of(cls, day: date) -> Weekday:
        return cls.validate(day.weekday())

    def next(self) -> Weekday:
        return Weekday((self.value + 1) % len(Weekday))

    def prev(self) -> Weekday:
        return Weekday((self.value - 1) % len(Weekday))

    @property
    def label(self) -> str:
        return self.name.capitalize()


def local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class Checkpoint:
    id: str | None = None
    time: datetime = field(default_factory=local_now)
    project: str | None = None
    message: str | None = None
    registered: bool = False

    def to_document(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "project": self.project,
            "message": self.message,
            "registered": bool(self.registered),
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any], id: str | None = None) -> Checkpoint:
        identifier = id or data.get("id") or data.get("_firestore_id")
        raw_time = data.get("time")
        if isinstance(raw_time, str):
            parsed = datetime.fromisoformat(raw_time)
        elif isinstance(raw_time, datetime):
            parsed = raw_time
        else:
            raise ValueError(f"Checkpoint document has no usable time: {raw_time!r}")
        return cls(
            id=str(identifier) if identifier else None,
            time=parsed.astimezone(),
            project=_optional_text(data.get("project")),
            message=_optional_text(data.get("message")),
            registered=bool(data.get("registered", False)),
        )


@dataclass(frozen=True)
class Interval:
    start: Checkpoint
    end: Checkpoint
    minutes: int


@dataclass(frozen=True)
class UnregisteredEntry:
    checkpoint: Checkpoint
    minutes: int


@dataclass(frozen=True)
class Task:
    id: int
    name: str
    spent: str | None = None
    total: str | None = None


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    color: int | None = None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
