from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from .errors import ValidationError

MINUTES_PER_DAY = 1440
LAST_MINUTE_OF_DAY = MINUTES_PER_DAY - 1
WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_CLOCK_RE = re.compile(r"^\s*(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*$")


def parse_clock(value: str | int) -> int:
    """Convert "HH:MM" (or an already-parsed minute-of-day) into minute-of-day."""
    if isinstance(value, bool):
        raise ValidationError("time must be HH:MM or a minute-of-day integer")
    if isinstance(value, int):
        return _checked_minute(value)

    match = _CLOCK_RE.match(str(value))
    if not match:
        raise ValidationError(f"time must be formatted as HH:MM: {value!r}")

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    if hour > 23 or minute > 59:
        raise ValidationError(f"time is out of range: {value!r}")
    return hour * 60 + minute


def format_clock(minute_of_day: int) -> str:
    hour, minute = divmod(_checked_minute(minute_of_day), 60)
    return f"{hour:02d}:{minute:02d}"


def _checked_minute(value: int) -> int:
    if value < 0 or value > LAST_MINUTE_OF_DAY:
        raise ValidationError(f"minute-of-day must be within 0..{LAST_MINUTE_OF_DAY}: {value}")
    return value


def weekday_name(target_date: date) -> str:
    return WEEKDAY_NAMES[target_date.weekday()]


def weekday_index(name: str) -> int:
    normalized = name.strip().lower()
    if normalized not in WEEKDAY_NAMES:
        raise ValidationError(f"unknown weekday: {name!r}")
    return WEEKDAY_NAMES.index(normalized)


@dataclass(frozen=True)
class TimeRange:
    start: int
    end: int

    def __post_init__(self) -> None:
        _checked_minute(self.start)
        _checked_minute(self.end)
        if self.end <= self.start:
            raise ValidationError("end time must be after start time")

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        return has_time_overlap(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": format_clock(self.start), "end": format_clock(self.end)}


def has_time_overlap(new_start: int, new_end: int, exist_start: int, exist_end: int) -> bool:
    """Return True when two minute-of-day intervals overlap by even one minute.

    Intervals are treated as half-open ranges: [start, end)
    so touching boundaries (e.g. 10:00-12:00 and 12:00-14:00) do not overlap.
    """
    if new_start >= new_end:
        raise ValueError("new_start must be earlier than new_end.")
    if exist_start >= exist_end:
        raise ValueError("exist_start must be earlier than exist_end.")

    return new_start < exist_end and new_end > exist_start


def free_ranges(window: TimeRange, booked: Iterable[TimeRange]) -> list[TimeRange]:
    """Gaps inside ``window`` not covered by any booked range."""
    gaps: list[TimeRange] = []
    cursor = window.start
    for item in sorted(booked, key=lambda value: (value.start, value.end)):
        if item.end <= cursor or item.start >= window.end:
            continue
        if item.start > cursor:
            gaps.append(TimeRange(cursor, item.start))
        cursor = max(cursor, item.end)
        if cursor >= window.end:
            break
    if cursor < window.end:
        gaps.append(TimeRange(cursor, window.end))
    return gaps


def parse_date(value: str | date) -> date:
    """Calendar date from a ``date``, a ``datetime`` (time dropped) or "YYYY-MM-DD"."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip().replace("/", "-"), "%Y-%m-%d").date()
    except ValueError as error:
        raise ValidationError(f"date must be formatted as YYYY-MM-DD: {value!r}") from error
