from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Iterable, Iterator

from .errors import NotFoundError, StaleReservationError
from .models import Reservation
from .time_model import has_time_overlap

PartitionKey = tuple[str, date]


class PartitionLocks:
    """One lock per (facility_id, date) so unrelated days never contend."""

    def __init__(self) -> None:
        self._locks: dict[PartitionKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, key: PartitionKey) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: PartitionKey) -> Iterator[None]:
        with self.lock_for(key):
            yield


def find_overlap(candidate: Reservation, existing: Iterable[Reservation]) -> Reservation | None:
    for row in existing:
        if row.reservation_id == candidate.reservation_id or not row.is_active:
            continue
        if row.partition_key() != candidate.partition_key():
            continue
        if has_time_overlap(candidate.start, candidate.end, row.start, row.end):
            return row
    return None


class ReservationStore(ABC):
    """Persistence boundary the engine and the lifecycle manager serialize against."""

    @abstractmethod
    def insert_if_no_overlap(self, reservation: Reservation) -> bool:
        """Atomically check for an active overlap and insert.

        Returns False, writing nothing, when an active reservation on the same
        facility and date overlaps ``reservation``.
        """

    @abstractmethod
    def get(self, reservation_id: str) -> Reservation | None: ...

    @abstractmethod
    def replace(self, reservation: Reservation, expected_version: int) -> Reservation:
        """Overwrite a stored reservation if its version still equals ``expected_version``.

        The stored copy gets ``expected_version + 1``.
        """

    @abstractmethod
    def delete(self, reservation_id: str, expected_version: int) -> None: ...

    @abstractmethod
    def list_for_day(self, facility_id: str, target_date: date) -> list[Reservation]: ...

    @abstractmethod
    def list_all(self) -> list[Reservation]: ...

    def list_active_for_day(self, facility_id: str, target_date: date) -> list[Reservation]:
        rows = [row for row in self.list_for_day(facility_id, target_date) if row.is_active]
        return sorted(rows, key=lambda row: (row.start, row.end))


def check_version(current: Reservation | None, expected_version: int) -> Reservation:
    if current is None:
        raise NotFoundError("reservation not found")
    if current.version != expected_version:
        raise StaleReservationError("reservation was modified concurrently; reload and retry")
    return current


class InMemoryReservationStore(ReservationStore):
    def __init__(self, reservations: Iterable[Reservation] = ()) -> None:
        self._items: dict[str, Reservation] = {row.reservation_id: row for row in reservations}
        self._partitions = PartitionLocks()
        self._write_lock = threading.Lock()

    def insert_if_no_overlap(self, reservation: Reservation) -> bool:
        with self._partitions.hold(reservation.partition_key()):
            same_day = self.list_for_day(reservation.facility_id, reservation.date)
            if find_overlap(reservation, same_day) is not None:
                return False
            with self._write_lock:
                self._items[reservation.reservation_id] = reservation
            return True

    def get(self, reservation_id: str) -> Reservation | None:
        return self._items.get(reservation_id)

    def replace(self, reservation: Reservation, expected_version: int) -> Reservation:
        with self._partitions.hold(reservation.partition_key()):
            check_version(self._items.get(reservation.reservation_id), expected_version)
            stored = _with_version(reservation, expected_version + 1)
            with self._write_lock:
                self._items[reservation.reservation_id] = stored
            return stored

    def delete(self, reservation_id: str, expected_version: int) -> None:
        current = self._items.get(reservation_id)
        if current is None:
            raise NotFoundError("reservation not found")
        with self._partitions.hold(current.partition_key()):
            check_version(self._items.get(reservation_id), expected_version)
            with self._write_lock:
                del self._items[reservation_id]

    def list_for_day(self, facility_id: str, target_date: date) -> list[Reservation]:
        return [row for row in self.list_all() if row.facility_id == facility_id and row.date == target_date]

    def list_all(self) -> list[Reservation]:
        with self._write_lock:
            return list(self._items.values())


def _with_version(reservation: Reservation, version: int) -> Reservation:
    return replace(reservation, version=version)
