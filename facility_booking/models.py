from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from fractions import Fraction
from typing import Any, Callable

from .errors import ValidationError
from .pricing import duration_hours, to_major_units
from .time_model import TimeRange, format_clock, parse_clock

NOTES_MAX_LENGTH = 500


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


def parse_status(value: str | ReservationStatus) -> ReservationStatus:
    try:
        return ReservationStatus(value)
    except ValueError as error:
        raise ValidationError(f"unknown reservation status: {value!r}") from error


_BOOL_TRUE = {"1", "true", "yes", "on"}
_BOOL_FALSE = {"0", "false", "no", "off"}


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _BOOL_TRUE:
        return True
    if normalized in _BOOL_FALSE:
        return False
    raise ValidationError(f"not a boolean value: {value!r}")


@dataclass(frozen=True)
class OperatingWindow:
    open: int
    close: int

    def __post_init__(self) -> None:
        if self.close <= self.open:
            raise ValidationError("operating hours must close after they open")

    def as_range(self) -> TimeRange:
        return TimeRange(self.open, self.close)

    def to_dict(self) -> dict[str, str]:
        return {"open": format_clock(self.open), "close": format_clock(self.close)}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "OperatingWindow":
        return OperatingWindow(open=parse_clock(data["open"]), close=parse_clock(data["close"]))


@dataclass(frozen=True)
class Facility:
    facility_id: str
    hourly_rate_cents: int
    operating_hours: dict[int, OperatingWindow] = field(default_factory=dict)
    is_active: bool = True
    name: str | None = None
    holiday_country: str | None = None

    def window_for(self, target_date: date, is_holiday: Callable[[date], bool] | None = None) -> OperatingWindow | None:
        if is_holiday is not None and is_holiday(target_date):
            return None
        return self.operating_hours.get(target_date.weekday())


@dataclass(frozen=True)
class Actor:
    actor_id: str
    is_admin: bool = False

    def may_act_on(self, reservation: "Reservation") -> bool:
        return self.is_admin or reservation.requester_id == self.actor_id


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    facility_id: str
    requester_id: str
    date: date
    start: int
    end: int
    hourly_rate_cents: int
    total_price_cents: int
    status: ReservationStatus
    created_at: datetime
    updated_at: datetime
    group_id: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    version: int = 1

    def __post_init__(self) -> None:
        TimeRange(self.start, self.end)
        is_cancelled = self.status is ReservationStatus.CANCELLED
        has_cancellation = self.cancellation_reason is not None and self.cancelled_at is not None
        if is_cancelled != has_cancellation:
            raise ValidationError("cancellation reason and timestamp are set only for cancelled reservations")

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.start, self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    @property
    def duration_hours(self) -> Fraction:
        return duration_hours(self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def partition_key(self) -> tuple[str, date]:
        return self.facility_id, self.date

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "reservation_id": self.reservation_id,
            "facility_id": self.facility_id,
            "requester_id": self.requester_id,
            "group_id": self.group_id,
            "date": self.date.isoformat(),
            "start": format_clock(self.start),
            "end": format_clock(self.end),
            "duration_hours": float(self.duration_hours),
            "hourly_rate_cents": self.hourly_rate_cents,
            "total_price_cents": self.total_price_cents,
            "total_price": str(to_major_units(self.total_price_cents)),
            "status": self.status.value,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(timespec="seconds"),
            "updated_at": self.updated_at.isoformat(timespec="seconds"),
            "version": self.version,
        }
        if self.status is ReservationStatus.CANCELLED:
            payload["cancellation_reason"] = self.cancellation_reason
            payload["cancelled_at"] = self.cancelled_at.isoformat(timespec="seconds") if self.cancelled_at else None
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Reservation":
        cancelled_at = data.get("cancelled_at")
        return Reservation(
            reservation_id=str(data["reservation_id"]),
            facility_id=str(data["facility_id"]),
            requester_id=str(data["requester_id"]),
            group_id=(str(data["group_id"]) if data.get("group_id") is not None else None),
            date=date.fromisoformat(str(data["date"])),
            start=parse_clock(str(data["start"])),
            end=parse_clock(str(data["end"])),
            hourly_rate_cents=int(data["hourly_rate_cents"]),
            total_price_cents=int(data["total_price_cents"]),
            status=parse_status(str(data["status"])),
            notes=(str(data["notes"]) if data.get("notes") is not None else None),
            cancellation_reason=(
                str(data["cancellation_reason"]) if data.get("cancellation_reason") is not None else None
            ),
            cancelled_at=(datetime.fromisoformat(str(cancelled_at)) if cancelled_at is not None else None),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            updated_at=datetime.fromisoformat(str(data["updated_at"])),
            version=int(data.get("version", 1)),
        )
