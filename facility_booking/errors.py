from __future__ import annotations


class ReservationError(Exception):
    """Base class for every error the booking core reports to its caller."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ReservationError, ValueError):
    pass


class NotFoundError(ReservationError, LookupError):
    pass


class ConflictError(ReservationError):
    pass


class StaleReservationError(ConflictError):
    """Raised when a conditional write loses against a concurrent update."""


class AuthorizationError(ReservationError):
    pass


class InvalidStateError(ReservationError):
    pass


class ReservationStorageError(RuntimeError):
    pass
