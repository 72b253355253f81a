from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Protocol

import holidays as pyholidays
import yaml

from .errors import NotFoundError, ReservationStorageError, ValidationError
from .models import Facility, OperatingWindow, parse_bool
from .pricing import parse_money
from .time_model import weekday_index

logger = logging.getLogger(__name__)

_HOLIDAY_CACHE: dict[tuple[str, int], set[date]] = {}
_HOLIDAY_CACHE_LOCK = threading.Lock()


class FacilityProvider(Protocol):
    def get_facility(self, facility_id: str) -> Facility | None: ...


def is_public_holiday(country: str, target_date: date) -> bool:
    key = (country.upper(), target_date.year)
    with _HOLIDAY_CACHE_LOCK:
        if key not in _HOLIDAY_CACHE:
            holiday_map = pyholidays.country_holidays(key[0], years=[key[1]])
            _HOLIDAY_CACHE[key] = set(holiday_map.keys())
        return target_date in _HOLIDAY_CACHE[key]


def operating_window(facility: Facility, target_date: date) -> OperatingWindow | None:
    """Opening hours of ``facility`` on ``target_date``; None means closed."""
    if facility.holiday_country:
        country = facility.holiday_country
        return facility.window_for(target_date, lambda day: is_public_holiday(country, day))
    return facility.window_for(target_date)


def require_facility(provider: FacilityProvider, facility_id: str, *, active_only: bool = True) -> Facility:
    facility = provider.get_facility(facility_id)
    if facility is None or (active_only and not facility.is_active):
        raise NotFoundError("facility not found or not available")
    return facility


class InMemoryFacilityCatalog:
    def __init__(self, facilities: Iterable[Facility] = ()) -> None:
        self._facilities: dict[str, Facility] = {item.facility_id: item for item in facilities}
        self._lock = threading.Lock()

    def get_facility(self, facility_id: str) -> Facility | None:
        with self._lock:
            return self._facilities.get(facility_id)

    def add(self, facility: Facility) -> None:
        with self._lock:
            self._facilities[facility.facility_id] = facility

    def set_rate(self, facility_id: str, hourly_rate_cents: int) -> Facility:
        with self._lock:
            current = self._facilities.get(facility_id)
            if current is None:
                raise NotFoundError("facility not found")
            updated = replace(current, hourly_rate_cents=hourly_rate_cents)
            self._facilities[facility_id] = updated
            return updated

    def set_active(self, facility_id: str, is_active: bool) -> Facility:
        with self._lock:
            current = self._facilities.get(facility_id)
            if current is None:
                raise NotFoundError("facility not found")
            updated = replace(current, is_active=is_active)
            self._facilities[facility_id] = updated
            return updated


class YamlFacilityCatalog:
    """Read-only facility descriptors loaded from a YAML list.

    Each row looks like::

        - facility_id: field-1
          name: North Pitch
          hourly_rate: "100.00"
          is_active: true
          holiday_country: US
          operating_hours:
            monday: {open: "08:00", close: "22:00"}
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._facilities = {item.facility_id: item for item in self._load()}

    def get_facility(self, facility_id: str) -> Facility | None:
        return self._facilities.get(facility_id)

    def facility_ids(self) -> list[str]:
        return sorted(self._facilities)

    def _load(self) -> list[Facility]:
        if not self.path.exists():
            logger.warning("facility catalog %s does not exist; no facilities loaded", self.path)
            return []
        try:
            payload = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            raise ReservationStorageError(f"Failed to read facility catalog: {self.path}") from error

        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ReservationStorageError(f"Facility catalog must be a YAML list: {self.path}")
        return [facility_from_dict(row) for row in payload if isinstance(row, dict)]


def facility_from_dict(data: dict[str, Any]) -> Facility:
    if "facility_id" not in data:
        raise ValidationError("facility_id is required")

    hours: dict[int, OperatingWindow] = {}
    for day_name, window in (data.get("operating_hours") or {}).items():
        if not window:
            continue
        hours[weekday_index(str(day_name))] = OperatingWindow.from_dict(window)

    holiday_country = data.get("holiday_country")
    return Facility(
        facility_id=str(data["facility_id"]),
        name=(str(data["name"]) if data.get("name") is not None else None),
        hourly_rate_cents=parse_money(str(data.get("hourly_rate", 0))),
        operating_hours=hours,
        is_active=parse_bool(data.get("is_active", True)),
        holiday_country=(str(holiday_country) if holiday_country else None),
    )
