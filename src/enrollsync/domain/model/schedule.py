"""Time slots and rehearsals, the units conflicts are evaluated over."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time

from enrollsync.domain.model.enums import Weekday


def parse_clock(value: str) -> time:
    """Parse a ``HH:MM`` wall-clock string as stored by the backend."""
    hours, _, minutes = value.strip().partition(":")
    try:
        return time(int(hours), int(minutes or 0))
    except ValueError as exc:
        raise ValueError(f"Invalid clock time: {value!r}") from exc


def format_clock(value: time) -> str:
    return value.strftime("%H:%M")


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval overlap: touching endpoints do not overlap."""
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True, slots=True)
class TimeBlock:
    """A weekly recurring slot ``[start, end)`` on ``day``."""

    day: Weekday
    start: time
    end: time
    location: str | None = None

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(
                f"TimeBlock must end after it starts ({self.start} - {self.end})"
            )

    def overlaps(self, other: TimeBlock) -> bool:
        return self.day == other.day and intervals_overlap(
            self.start, self.end, other.start, other.end
        )

    def describe(self) -> str:
        return f"{self.day.label} {format_clock(self.start)}-{format_clock(self.end)}"


@dataclass(frozen=True, slots=True, kw_only=True)
class Rehearsal:
    """A dated meeting of a group."""

    id: str
    group_id: str
    on: date
    start: time
    end: time
    location: str | None = None
    conductor_id: str | None = None
    member_ids: frozenset[str] = field(default_factory=frozenset[str])
    group_name: str = ""

    @property
    def label(self) -> str:
        return self.group_name or self.group_id
