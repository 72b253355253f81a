from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Callable

from .engine import validate_group_id, validate_notes
from .errors import AuthorizationError, InvalidStateError, NotFoundError
from .models import NOTES_MAX_LENGTH, Actor, Reservation, ReservationStatus
from .store import ReservationStore

logger = logging.getLogger(__name__)


class LifecycleAction(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    UPDATE = "update"
    DELETE = "delete"


# Every legal edge. A target of None removes the record.
TRANSITIONS: dict[tuple[ReservationStatus, LifecycleAction], ReservationStatus | None] = {
    (ReservationStatus.PENDING, LifecycleAction.CONFIRM): ReservationStatus.CONFIRMED,
    (ReservationStatus.PENDING, LifecycleAction.CANCEL): ReservationStatus.CANCELLED,
    (ReservationStatus.CONFIRMED, LifecycleAction.CANCEL): ReservationStatus.CANCELLED,
    (ReservationStatus.PENDING, LifecycleAction.UPDATE): ReservationStatus.PENDING,
    (ReservationStatus.CANCELLED, LifecycleAction.DELETE): None,
}

_REJECTION_MESSAGES = {
    LifecycleAction.CONFIRM: "can only confirm pending reservations",
    LifecycleAction.CANCEL: "reservation cannot be cancelled",
    LifecycleAction.UPDATE: "can only modify pending reservations",
    LifecycleAction.DELETE: "can only delete cancelled reservations",
}

_UNSET = object()


def next_status(status: ReservationStatus, action: LifecycleAction) -> ReservationStatus | None:
    key = (status, action)
    if key not in TRANSITIONS:
        raise InvalidStateError(f"{_REJECTION_MESSAGES[action]} (current status: {status.value})")
    return TRANSITIONS[key]


def allowed_actions(status: ReservationStatus) -> list[LifecycleAction]:
    return [action for (source, action) in TRANSITIONS if source is status]


class LifecycleManager:
    def __init__(
        self,
        store: ReservationStore,
        clock: Callable[[], datetime] | None = None,
        notes_max_length: int = NOTES_MAX_LENGTH,
    ) -> None:
        self._store = store
        self._clock: Callable[[], datetime] = clock or datetime.now
        self._notes_max_length = notes_max_length

    def get(self, reservation_id: str, actor: Actor) -> Reservation:
        return self._load_authorized(reservation_id, actor, "view")

    def confirm(self, reservation_id: str, actor: Actor) -> Reservation:
        current = self._load_authorized(reservation_id, actor, "confirm")
        target = next_status(current.status, LifecycleAction.CONFIRM)
        return self._write(current, status=target)

    def cancel(self, reservation_id: str, actor: Actor, reason: str | None = None) -> Reservation:
        current = self._load_authorized(reservation_id, actor, "cancel")
        target = next_status(current.status, LifecycleAction.CANCEL)
        now = self._clock()
        return self._write(current, now=now, status=target, cancellation_reason=reason or "", cancelled_at=now)

    def update_mutable_fields(
        self,
        reservation_id: str,
        actor: Actor,
        *,
        notes: str | None | object = _UNSET,
        group_id: str | None | object = _UNSET,
    ) -> Reservation:
        """Change notes and/or group while the reservation is pending.

        Omitted keyword arguments are left untouched; passing ``None`` clears.
        """
        current = self._load_authorized(reservation_id, actor, "update")
        next_status(current.status, LifecycleAction.UPDATE)

        changes: dict[str, object] = {}
        if notes is not _UNSET:
            changes["notes"] = validate_notes(notes, self._notes_max_length)  # type: ignore[arg-type]
        if group_id is not _UNSET:
            changes["group_id"] = validate_group_id(group_id)  # type: ignore[arg-type]
        if not changes:
            return current
        return self._write(current, **changes)

    def delete(self, reservation_id: str, actor: Actor) -> None:
        current = self._load_authorized(reservation_id, actor, "delete")
        next_status(current.status, LifecycleAction.DELETE)
        self._store.delete(reservation_id, expected_version=current.version)
        logger.info("reservation %s deleted by %s", reservation_id, actor.actor_id)

    def _load_authorized(self, reservation_id: str, actor: Actor, verb: str) -> Reservation:
        current = self._store.get(reservation_id)
        if current is None:
            raise NotFoundError("reservation not found")
        if not actor.may_act_on(current):
            raise AuthorizationError(f"not authorized to {verb} this reservation")
        return current

    def _write(self, current: Reservation, now: datetime | None = None, **changes: object) -> Reservation:
        updated = replace(current, updated_at=now or self._clock(), **changes)
        stored = self._store.replace(updated, expected_version=current.version)
        if stored.status is not current.status:
            logger.info(
                "reservation %s %s -> %s", stored.reservation_id, current.status.value, stored.status.value
            )
        return stored
