"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityResolver
from .conflicts import BookingConflictDetector
from .models import (
    AppointmentDraft,
    AppointmentStatus,
    AvailabilityWindow,
    BookedInterval,
    BookingRequest,
    PersistedAppointment,
    ServiceItem,
    SlotState,
    TimeOfDay,
    parse_date,
)
from .slot_planner import SlotPlanner
from .time_grid import DEFAULT_GRID, TimeGrid
from .validator import AppointmentValidator, BookingError, BookingErrorKind, ValidationResult

__all__ = [
    "AppointmentDraft",
    "AppointmentStatus",
    "AppointmentValidator",
    "AvailabilityResolver",
    "AvailabilityWindow",
    "BookedInterval",
    "BookingConflictDetector",
    "BookingError",
    "BookingErrorKind",
    "BookingRequest",
    "DEFAULT_GRID",
    "PersistedAppointment",
    "ServiceItem",
    "SlotPlanner",
    "SlotState",
    "TimeGrid",
    "TimeOfDay",
    "ValidationResult",
    "parse_date",
]
