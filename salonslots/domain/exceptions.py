"""
Domain-specific exception hierarchy for the salon slot planner.

Expected booking outcomes (past dates, taken slots, ...) are reported as
``BookingError`` values, not exceptions. The classes below cover malformed
input at the parsing boundary and faults raised by store adapters.
"""


class SalonSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidTimeFormat(SalonSlotsError, ValueError):
    """Raised when a wall-clock time cannot be parsed as H:MM or HH:MM."""


class InvalidDateFormat(SalonSlotsError, ValueError):
    """Raised when a calendar date cannot be parsed as YYYY-MM-DD."""


class StoreError(SalonSlotsError):
    """Raised when the booking store returns data that cannot be used."""


class StoreUnavailableError(StoreError):
    """Raised when the booking store cannot be reached."""


class AppointmentConflictError(StoreError):
    """Raised by a store that rejects a write because the slot was taken meanwhile."""
