from __future__ import annotations

import logging
import shutil
import threading
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable
from urllib.parse import quote, unquote

import yaml

from .errors import NotFoundError, ReservationStorageError
from .models import Reservation
from .store import PartitionKey, PartitionLocks, ReservationStore, check_version, find_overlap

logger = logging.getLogger(__name__)


class YamlReservationStore(ReservationStore):
    """Reservations kept as one YAML list per (facility, date) partition.

    Layout under ``base_dir``::

        reservations/<facility_id>/<YYYY-MM-DD>.yaml
        reservation_events.yaml

    Every write to a partition file happens while holding that partition's
    lock, so the overlap check and the insert see the same file contents.
    The store assumes it is the only process writing to ``base_dir``.
    """

    def __init__(self, base_dir: str | Path = "data", clock: Callable[[], datetime] | None = None) -> None:
        self.base_dir = Path(base_dir)
        self.reservations_dir = self.base_dir / "reservations"
        self.log_file = self.base_dir / "reservation_events.yaml"
        self._clock: Callable[[], datetime] = clock or datetime.now
        self._partitions = PartitionLocks()
        self._log_lock = threading.Lock()
        self._index_lock = threading.Lock()
        self._index: dict[str, PartitionKey] = {}
        self._ensure_files()
        self._rebuild_index()

    def _ensure_files(self) -> None:
        self.reservations_dir.mkdir(parents=True, exist_ok=True)
        if not self.log_file.exists():
            self.log_file.write_text("[]\n", encoding="utf-8")

    def _partition_path(self, key: PartitionKey) -> Path:
        facility_id, target_date = key
        return self.reservations_dir / quote(facility_id, safe="") / f"{target_date.isoformat()}.yaml"

    def _partition_paths(self) -> list[tuple[PartitionKey, Path]]:
        found: list[tuple[PartitionKey, Path]] = []
        for path in sorted(self.reservations_dir.glob("*/*.yaml")):
            try:
                target_date = date.fromisoformat(path.stem)
            except ValueError:
                continue
            found.append(((unquote(path.parent.name), target_date), path))
        return found

    def _rebuild_index(self) -> None:
        index: dict[str, PartitionKey] = {}
        for key, path in self._partition_paths():
            for row in self._read_yaml_list(path):
                reservation_id = row.get("reservation_id")
                if reservation_id is not None:
                    index[str(reservation_id)] = key
        with self._index_lock:
            self._index = index

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            elif path != self.log_file:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise ReservationStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = self._clock().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError:
            logger.exception("could not back up corrupted YAML file %s", path)

        logger.warning("recovered corrupted YAML file %s: %s", path, error)
        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self._log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": str(backup_path.name),
                    "reason": str(error),
                },
            )

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or self._clock()).isoformat(timespec="seconds")
        with self._log_lock:
            events = self._read_yaml_list(self.log_file)
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            self._write_yaml_list(self.log_file, events)

    def _load_partition(self, key: PartitionKey) -> list[Reservation]:
        return [Reservation.from_dict(row) for row in self._read_yaml_list(self._partition_path(key))]

    def _save_partition(self, key: PartitionKey, rows: list[Reservation]) -> None:
        self._write_yaml_list(self._partition_path(key), [row.to_dict() for row in rows])

    def _key_for(self, reservation_id: str) -> PartitionKey | None:
        with self._index_lock:
            return self._index.get(reservation_id)

    def get_events(self) -> list[dict[str, Any]]:
        with self._log_lock:
            return self._read_yaml_list(self.log_file)

    def insert_if_no_overlap(self, reservation: Reservation) -> bool:
        key = reservation.partition_key()
        with self._partitions.hold(key):
            rows = self._load_partition(key)
            clash = find_overlap(reservation, rows)
            if clash is not None:
                self._log_event(
                    "RESERVATION_CONFLICT",
                    {
                        "facility_id": reservation.facility_id,
                        "date": reservation.date.isoformat(),
                        "requested": reservation.time_range.to_dict(),
                        "existing_reservation_id": clash.reservation_id,
                    },
                )
                return False

            rows.append(reservation)
            self._save_partition(key, rows)
            with self._index_lock:
                self._index[reservation.reservation_id] = key

        self._log_event(
            "RESERVATION_CREATED",
            {
                "reservation_id": reservation.reservation_id,
                "facility_id": reservation.facility_id,
                "requester_id": reservation.requester_id,
                "date": reservation.date.isoformat(),
                **reservation.time_range.to_dict(),
                "total_price_cents": reservation.total_price_cents,
            },
            reservation.created_at,
        )
        return True

    def get(self, reservation_id: str) -> Reservation | None:
        key = self._key_for(reservation_id)
        if key is None:
            return None
        for row in self._load_partition(key):
            if row.reservation_id == reservation_id:
                return row
        return None

    def replace(self, reservation: Reservation, expected_version: int) -> Reservation:
        key = self._key_for(reservation.reservation_id)
        if key is None:
            raise NotFoundError("reservation not found")

        with self._partitions.hold(key):
            rows = self._load_partition(key)
            found_index = _find_index(rows, reservation.reservation_id)
            check_version(rows[found_index], expected_version)

            stored = replace(reservation, version=expected_version + 1)
            rows[found_index] = stored
            self._save_partition(key, rows)

        self._log_event(
            "RESERVATION_UPDATED",
            {
                "reservation_id": stored.reservation_id,
                "status": stored.status.value,
                "version": stored.version,
            },
            stored.updated_at,
        )
        return stored

    def delete(self, reservation_id: str, expected_version: int) -> None:
        key = self._key_for(reservation_id)
        if key is None:
            raise NotFoundError("reservation not found")

        with self._partitions.hold(key):
            rows = self._load_partition(key)
            found_index = _find_index(rows, reservation_id)
            check_version(rows[found_index], expected_version)
            removed = rows.pop(found_index)
            self._save_partition(key, rows)
            with self._index_lock:
                self._index.pop(reservation_id, None)

        self._log_event(
            "RESERVATION_DELETED",
            {
                "reservation_id": reservation_id,
                "facility_id": removed.facility_id,
                "date": removed.date.isoformat(),
            },
        )

    def list_for_day(self, facility_id: str, target_date: date) -> list[Reservation]:
        return self._load_partition((facility_id, target_date))

    def list_all(self) -> list[Reservation]:
        rows: list[Reservation] = []
        for key, _path in self._partition_paths():
            rows.extend(self._load_partition(key))
        return rows


def _find_index(rows: list[Reservation], reservation_id: str) -> int:
    for index, row in enumerate(rows):
        if row.reservation_id == reservation_id:
            return index
    raise NotFoundError("reservation not found")
