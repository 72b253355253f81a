from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from .facilities import FacilityProvider, operating_window, require_facility
from .models import OperatingWindow
from .pricing import to_major_units
from .store import ReservationStore
from .time_model import TimeRange, free_ranges, parse_date


@dataclass(frozen=True)
class Availability:
    facility_id: str
    date: date
    operating_window: OperatingWindow | None
    booked_ranges: list[TimeRange]
    hourly_rate_cents: int

    @property
    def is_closed(self) -> bool:
        return self.operating_window is None

    def free_ranges(self) -> list[TimeRange]:
        """Unbooked gaps inside the operating window; empty on closed days."""
        if self.operating_window is None:
            return []
        return free_ranges(self.operating_window.as_range(), self.booked_ranges)

    def to_dict(self) -> dict[str, Any]:
        return {
            "facility_id": self.facility_id,
            "date": self.date.isoformat(),
            "operating_hours": self.operating_window.to_dict() if self.operating_window else None,
            "booked_slots": [item.to_dict() for item in self.booked_ranges],
            "free_slots": [item.to_dict() for item in self.free_ranges()],
            "hourly_rate": str(to_major_units(self.hourly_rate_cents)),
            "hourly_rate_cents": self.hourly_rate_cents,
        }


class AvailabilityCalculator:
    """Read-only view of a facility's day.

    The result is advisory; only ``ReservationEngine`` decides whether a
    range can be booked.
    """

    def __init__(self, facilities: FacilityProvider, store: ReservationStore) -> None:
        self._facilities = facilities
        self._store = store

    def get_availability(self, facility_id: str, target_date: date | str) -> Availability:
        facility = require_facility(self._facilities, facility_id, active_only=False)
        target_date = parse_date(target_date)
        booked = [row.time_range for row in self._store.list_active_for_day(facility_id, target_date)]
        return Availability(
            facility_id=facility.facility_id,
            date=target_date,
            operating_window=operating_window(facility, target_date),
            booked_ranges=booked,
            hourly_rate_cents=facility.hourly_rate_cents,
        )
