from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Generic, TypeVar

from .availability import Availability, AvailabilityCalculator
from .engine import BookingPolicy, ReservationEngine
from .errors import ValidationError
from .facilities import FacilityProvider
from .lifecycle import LifecycleManager
from .models import Actor, Reservation, ReservationStatus
from .store import ReservationStore

T = TypeVar("T")

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


@dataclass(frozen=True)
class ReservationFilter:
    requester_id: str | None = None
    status: ReservationStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    facility_id: str | None = None
    upcoming: bool = False

    def matches(self, reservation: Reservation, today: date) -> bool:
        if self.requester_id is not None and reservation.requester_id != self.requester_id:
            return False
        if self.facility_id is not None and reservation.facility_id != self.facility_id:
            return False
        if self.status is not None and reservation.status is not self.status:
            return False
        if self.date_from is not None and reservation.date < self.date_from:
            return False
        if self.date_to is not None and reservation.date > self.date_to:
            return False
        if self.upcoming and (reservation.date < today or not reservation.is_active):
            return False
        return True


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError("page must be a positive integer")
        if not 1 <= self.limit <= MAX_PAGE_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit)

    def pagination(self) -> dict[str, int]:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


@dataclass
class ReservationService:
    """The operations a transport binding exposes, wired over one store."""

    facilities: FacilityProvider
    store: ReservationStore
    policy: BookingPolicy = field(default_factory=BookingPolicy)
    clock: Callable[[], datetime] = datetime.now
    id_factory: Callable[[], str] | None = None

    def __post_init__(self) -> None:
        self.availability = AvailabilityCalculator(self.facilities, self.store)
        self.engine = ReservationEngine(
            self.facilities,
            self.store,
            policy=self.policy,
            clock=self.clock,
            id_factory=self.id_factory,
        )
        self.lifecycle = LifecycleManager(self.store, clock=self.clock, notes_max_length=self.policy.notes_max_length)

    def get_availability(self, facility_id: str, target_date: date | str) -> Availability:
        return self.availability.get_availability(facility_id, target_date)

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
        return self.engine.create_reservation(
            facility_id,
            target_date,
            start,
            end,
            requester_id,
            group_id=group_id,
            notes=notes,
        )

    def get_reservation(self, reservation_id: str, actor: Actor) -> Reservation:
        return self.lifecycle.get(reservation_id, actor)

    def confirm_reservation(self, reservation_id: str, actor: Actor) -> Reservation:
        return self.lifecycle.confirm(reservation_id, actor)

    def cancel_reservation(self, reservation_id: str, actor: Actor, reason: str | None = None) -> Reservation:
        return self.lifecycle.cancel(reservation_id, actor, reason)

    def update_reservation(self, reservation_id: str, actor: Actor, **fields: Any) -> Reservation:
        unknown = set(fields) - {"notes", "group_id"}
        if unknown:
            raise ValidationError(f"fields cannot be modified: {', '.join(sorted(unknown))}")
        return self.lifecycle.update_mutable_fields(reservation_id, actor, **fields)

    def delete_reservation(self, reservation_id: str, actor: Actor) -> None:
        self.lifecycle.delete(reservation_id, actor)

    def list_reservations(
        self,
        filter: ReservationFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[Reservation]:
        criteria = filter or ReservationFilter()
        page = page or PageRequest()
        today = self.clock().date()

        matched = [row for row in self.store.list_all() if criteria.matches(row, today)]
        # Newest date first, then by start time within a day.
        matched.sort(key=lambda row: (row.start, row.facility_id, row.reservation_id))
        matched.sort(key=lambda row: row.date, reverse=True)

        return Page(
            items=matched[page.offset : page.offset + page.limit],
            page=page.page,
            limit=page.limit,
            total=len(matched),
        )
