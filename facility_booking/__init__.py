from .availability import Availability, AvailabilityCalculator
from .config import Settings, load_settings
from .engine import BookingPolicy, ReservationEngine
from .errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ReservationError,
    ReservationStorageError,
    StaleReservationError,
    ValidationError,
)
from .facilities import FacilityProvider, InMemoryFacilityCatalog, YamlFacilityCatalog
from .lifecycle import TRANSITIONS, LifecycleAction, LifecycleManager, next_status
from .models import Actor, Facility, OperatingWindow, Reservation, ReservationStatus
from .pricing import price_for_duration
from .request_text import ParsedReservationRequest, parse_reservation_request
from .service import Page, PageRequest, ReservationFilter, ReservationService
from .store import InMemoryReservationStore, ReservationStore
from .time_model import TimeRange, format_clock, has_time_overlap, parse_clock
from .yaml_store import YamlReservationStore

__all__ = [
    "Availability",
    "AvailabilityCalculator",
    "Settings",
    "load_settings",
    "BookingPolicy",
    "ReservationEngine",
    "AuthorizationError",
    "ConflictError",
    "InvalidStateError",
    "NotFoundError",
    "ReservationError",
    "ReservationStorageError",
    "StaleReservationError",
    "ValidationError",
    "FacilityProvider",
    "InMemoryFacilityCatalog",
    "YamlFacilityCatalog",
    "TRANSITIONS",
    "LifecycleAction",
    "LifecycleManager",
    "next_status",
    "Actor",
    "Facility",
    "OperatingWindow",
    "Reservation",
    "ReservationStatus",
    "price_for_duration",
    "ParsedReservationRequest",
    "parse_reservation_request",
    "Page",
    "PageRequest",
    "ReservationFilter",
    "ReservationService",
    "InMemoryReservationStore",
    "ReservationStore",
    "TimeRange",
    "format_clock",
    "has_time_overlap",
    "parse_clock",
    "YamlReservationStore",
]
