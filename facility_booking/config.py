from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .engine import BookingPolicy
from .errors import ReservationStorageError
from .models import NOTES_MAX_LENGTH, parse_bool

ENV_PREFIX = "FACILITY_BOOKING_"


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path("data")
    facilities_file: Path = Path("data/facilities.yaml")
    min_duration_minutes: int = 30
    slot_granularity_minutes: int = 1
    enforce_operating_hours: bool = False
    notes_max_length: int = NOTES_MAX_LENGTH
    admin_ids: frozenset[str] = field(default_factory=frozenset)

    def booking_policy(self) -> BookingPolicy:
        return BookingPolicy(
            min_duration_minutes=self.min_duration_minutes,
            slot_granularity_minutes=self.slot_granularity_minutes,
            enforce_operating_hours=self.enforce_operating_hours,
            notes_max_length=self.notes_max_length,
        )


def load_settings(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from an optional YAML file, then ``FACILITY_BOOKING_*`` env overrides.

    ``FACILITY_BOOKING_CONFIG`` names the YAML file when ``path`` is not given.
    """
    env = os.environ if environ is None else environ
    config_path = path or env.get(f"{ENV_PREFIX}CONFIG")

    raw: dict[str, Any] = {}
    if config_path:
        raw.update(_read_config_file(Path(config_path)))

    for item in fields(Settings):
        value = env.get(f"{ENV_PREFIX}{item.name.upper()}")
        if value is not None:
            raw[item.name] = value

    unknown = set(raw) - {item.name for item in fields(Settings)}
    if unknown:
        raise ValueError(f"unknown settings: {', '.join(sorted(unknown))}")

    return Settings(**{name: _coerce(name, value) for name, value in raw.items()})


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
        raise ReservationStorageError(f"Failed to read settings file: {path}") from error

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ReservationStorageError(f"Settings file must be a YAML mapping: {path}")
    return payload


def _coerce(name: str, value: Any) -> Any:
    if name in ("data_dir", "facilities_file"):
        return Path(str(value))
    if name == "enforce_operating_hours":
        return parse_bool(value)
    if name == "admin_ids":
        if isinstance(value, str):
            return frozenset(part.strip() for part in value.split(",") if part.strip())
        return frozenset(str(part) for part in value or [])
    return int(value)
