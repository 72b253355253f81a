from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .errors import ValidationError
from .time_model import TimeRange, parse_clock, parse_date

_DATE_RE = re.compile(r"(?P<date>\d{4}[/-]\d{1,2}[/-]\d{1,2})")
_TIME_RE = re.compile(r"(?<!\d)(?P<time>(?:[01]?\d|2[0-3]):[0-5]\d)(?!\d)")
_RELATIVE_DATE_RE = re.compile(r"\b(?P<day>today|tomorrow)\b", re.IGNORECASE)
_DURATION_RE = re.compile(r"\bfor\s+(?P<hours>\d+)\s*h(?:ours?)?(?:\s*(?P<minutes>\d+)\s*m(?:in(?:utes?)?)?)?\b", re.IGNORECASE)
_FACILITY_CLEAN_RE = re.compile(r"\b(book|reserve|please|from|to|until|on|at)\b", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedReservationRequest:
    facility_id: str | None
    date: date
    start: int
    end: int
    raw_text: str

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.start, self.end)


def _extract_facility(text: str, fragments: list[str]) -> str | None:
    candidate = text
    for fragment in fragments:
        if fragment:
            candidate = candidate.replace(fragment, " ")
    candidate = re.sub(r"[~]|(?<=\s)-(?=\s)", " ", candidate)
    candidate = _FACILITY_CLEAN_RE.sub(" ", candidate)
    candidate = re.sub(r"\s+", " ", candidate).strip()
    return candidate or None


def parse_reservation_request(text: str, reference_datetime: datetime | None = None) -> ParsedReservationRequest:
    """Parse "field-1 2026-02-24 10:00~12:00" or "field-1 tomorrow 18:00 for 1h 30m"."""
    if not text or not text.strip():
        raise ValidationError("text must not be empty")

    time_matches = _TIME_RE.findall(text)
    date_match = _DATE_RE.search(text)
    if date_match:
        if len(time_matches) < 2:
            raise ValidationError("Could not find start/end time in text. Expected format: HH:MM")

        date_text = date_match.group("date")
        start_time, end_time = time_matches[0], time_matches[1]
        target_date = parse_date(date_text)
        start, end = parse_clock(start_time), parse_clock(end_time)
        if start >= end:
            raise ValidationError("end time must be after start time")

        facility_id = _extract_facility(text, [date_text, start_time, end_time])
        return ParsedReservationRequest(facility_id=facility_id, date=target_date, start=start, end=end, raw_text=text)

    relative_date_match = _RELATIVE_DATE_RE.search(text)
    duration_match = _DURATION_RE.search(text)
    if not (relative_date_match and time_matches and duration_match):
        raise ValidationError(
            "Could not find a date in text. Expected format: YYYY-MM-DD or relative form like 'tomorrow 18:00 for 1h'"
        )

    now = reference_datetime or datetime.now()
    day_keyword = relative_date_match.group("day").lower()
    target_date = now.date() + timedelta(days=1 if day_keyword == "tomorrow" else 0)

    start = parse_clock(time_matches[0])
    duration_minutes = int(duration_match.group("hours")) * 60 + int(duration_match.group("minutes") or 0)
    if duration_minutes <= 0:
        raise ValidationError("duration must be greater than zero")
    end = start + duration_minutes
    if end > 1439:
        raise ValidationError("reservation must end on the same day")

    facility_id = _extract_facility(
        text,
        [relative_date_match.group(0), time_matches[0], duration_match.group(0)],
    )
    return ParsedReservationRequest(facility_id=facility_id, date=target_date, start=start, end=end, raw_text=text)

