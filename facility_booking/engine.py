from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable
from uuid import uuid4

from .errors import ConflictError, ValidationError
from .facilities import FacilityProvider, operating_window, require_facility
from .models import NOTES_MAX_LENGTH, Reservation, ReservationStatus
from .pricing import price_for_duration
from .store import ReservationStore
from .time_model import TimeRange, format_clock, parse_clock, parse_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingPolicy:
    min_duration_minutes: int = 30
    slot_granularity_minutes: int = 1
    enforce_operating_hours: bool = False
    notes_max_length: int = NOTES_MAX_LENGTH

    def __post_init__(self) -> None:
        if self.min_duration_minutes < 1:
            raise ValueError("min_duration_minutes must be at least 1")
        if self.slot_granularity_minutes < 1:
            raise ValueError("slot_granularity_minutes must be at least 1")
        if self.notes_max_length < 0:
            raise ValueError("notes_max_length cannot be negative")


def validate_notes(notes: str | None, max_length: int) -> str | None:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise ValidationError("notes must be a string")
    if len(notes) > max_length:
        raise ValidationError(f"notes cannot exceed {max_length} characters")
    return notes


def validate_group_id(group_id: str | None) -> str | None:
    if group_id is None:
        return None
    if not isinstance(group_id, str):
        raise ValidationError("group_id must be a string")
    return group_id


class ReservationEngine:
    """Validates a request, prices it and commits it against the no-overlap rule."""

    def __init__(
        self,
        facilities: FacilityProvider,
        store: ReservationStore,
        policy: BookingPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._facilities = facilities
        self._store = store
        self.policy = policy or BookingPolicy()
        self._clock: Callable[[], datetime] = clock or datetime.now
        self._id_factory: Callable[[], str] = id_factory or (lambda: str(uuid4()))

    def create_reservation(
        self,
        facility_id: str,
        target_date: date | str,
        start: int | str,
        end: int | str,
        requester_id: str,
        group_id: str | None = None,
        notes: str | None = None,
    ) -> Reservation:
        facility = require_facility(self._facilities, facility_id)
        target_date = parse_date(target_date)
        if not requester_id:
            raise ValidationError("requester_id is required")

        requested = self._validate_range(parse_clock(start), parse_clock(end))
        notes = validate_notes(notes, self.policy.notes_max_length)
        group_id = validate_group_id(group_id)

        if self.policy.enforce_operating_hours:
            window = operating_window(facility, target_date)
            if window is None:
                raise ValidationError("facility is closed on the requested date")
            if not window.as_range().contains(requested):
                raise ValidationError(
                    f"reservation must be within operating hours "
                    f"({format_clock(window.open)}-{format_clock(window.close)})"
                )

        # Rate is snapshotted here; later catalog changes never reprice this record.
        rate_cents = facility.hourly_rate_cents
        now = self._clock()
        reservation = Reservation(
            reservation_id=self._id_factory(),
            facility_id=facility.facility_id,
            requester_id=requester_id,
            group_id=group_id,
            date=target_date,
            start=requested.start,
            end=requested.end,
            hourly_rate_cents=rate_cents,
            total_price_cents=price_for_duration(requested.duration_minutes, rate_cents),
            status=ReservationStatus.PENDING,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        if not self._store.insert_if_no_overlap(reservation):
            logger.info(
                "rejected %s %s %s-%s for %s: slot already booked",
                facility_id,
                target_date.isoformat(),
                format_clock(requested.start),
                format_clock(requested.end),
                requester_id,
            )
            raise ConflictError("time slot already booked")

        logger.info("created reservation %s on %s %s", reservation.reservation_id, facility_id, target_date.isoformat())
        return reservation

    def _validate_range(self, start: int, end: int) -> TimeRange:
        if end <= start:
            raise ValidationError("end time must be after start time")
        requested = TimeRange(start, end)

        if requested.duration_minutes < self.policy.min_duration_minutes:
            raise ValidationError(f"minimum booking is {self.policy.min_duration_minutes} minutes")
        step = self.policy.slot_granularity_minutes
        if start % step or end % step:
            raise ValidationError(f"start and end must fall on {step}-minute boundaries")
        return requested
