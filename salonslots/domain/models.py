"""
Domain models for slot planning and appointment booking.

Times and dates cross the library boundary as ``H:MM``/``HH:MM`` and
``YYYY-MM-DD`` strings; inside the domain they are held as ``TimeOfDay`` and
pendulum ``Date`` values so that slot arithmetic never touches raw strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date as date_type
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

import pendulum
from pendulum import Date

from .exceptions import InvalidDateFormat, InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """
    Immutable wall-clock time, normalized to minutes since midnight.

    Invariant: 0 <= minutes <= 24:00. Midnight at the end of the day is
    representable so an appointment may finish exactly at 24:00.
    """
    minutes: int

    def __post_init__(self):
        if not 0 <= self.minutes <= MINUTES_PER_DAY:
            raise InvalidTimeFormat(f"Time of day out of range: {self.minutes} minutes")

    @classmethod
    def parse(cls, value: "str | TimeOfDay") -> "TimeOfDay":
        """
        Parse an ``H:MM`` or ``HH:MM`` 24-hour string.

        Args:
            value: Time string, or an existing TimeOfDay (returned unchanged)

        Returns:
            TimeOfDay instance

        Raises:
            InvalidTimeFormat: If the value is not a valid 24-hour time
        """
        if isinstance(value, TimeOfDay):
            return value
        if not isinstance(value, str):
            raise InvalidTimeFormat(f"Expected a time string, got {value!r}")

        match = _TIME_PATTERN.match(value.strip())
        if not match:
            raise InvalidTimeFormat(f"Expected H:MM or HH:MM, got {value!r}")

        hour, minute = int(match.group(1)), int(match.group(2))
        if minute > 59 or hour > 24 or (hour == 24 and minute != 0):
            raise InvalidTimeFormat(f"Not a valid time of day: {value!r}")

        return cls(hour * 60 + minute)

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def plus(self, minutes: int) -> "TimeOfDay":
        """Return the time ``minutes`` later on the same day."""
        return TimeOfDay(self.minutes + minutes)

    def format_display(self) -> str:
        """
        Format for display on a 12-hour clock.
        Format: h:MM AM/PM
        """
        suffix = "PM" if self.hour >= 12 and self.hour < 24 else "AM"
        display_hour = self.hour % 12 or 12
        return f"{display_hour}:{self.minute:02d} {suffix}"

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def parse_date(value: "str | date_type") -> Date:
    """
    Parse a ``YYYY-MM-DD`` calendar date.

    Datetime values are truncated to their calendar day; time-of-day never
    takes part in date comparisons.

    Raises:
        InvalidDateFormat: If the value is not a valid calendar date
    """
    if isinstance(value, date_type):
        return Date(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateFormat(f"Expected a YYYY-MM-DD date, got {value!r}")

    try:
        parsed = pendulum.from_format(value.strip(), "YYYY-MM-DD")
    except ValueError as exc:
        raise InvalidDateFormat(f"Expected a YYYY-MM-DD date, got {value!r}") from exc

    return parsed.date()


class AppointmentStatus(str, Enum):
    """Lifecycle states of a persisted appointment."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Appointments in these states never occupy a slot
EXCLUDED_STATUSES = frozenset({AppointmentStatus.CANCELLED.value, AppointmentStatus.NO_SHOW.value})


@dataclass(frozen=True)
class AvailabilityWindow:
    """
    A staff member's declared working interval on a date.

    Invariant: start_time must be before end_time.
    """
    staff_id: str
    date: Date
    start_time: TimeOfDay
    end_time: TimeOfDay
    is_available: bool = True

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Availability start {self.start_time} must be before end {self.end_time}"
            )

    def covers(self, slot: TimeOfDay) -> bool:
        """Check if a slot start lies inside this window (half-open)."""
        return self.start_time.minutes <= slot.minutes < self.end_time.minutes

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "AvailabilityWindow":
        """Build a window from a ``staff_availability`` row."""
        is_available = record.get("is_available")
        return cls(
            staff_id=str(record["staff_id"]),
            date=parse_date(record["date"]),
            start_time=TimeOfDay.parse(record["start_time"]),
            end_time=TimeOfDay.parse(record["end_time"]),
            is_available=is_available is not False,
        )


@dataclass(frozen=True)
class BookedInterval:
    """
    Time span occupied by an existing appointment.

    Occupies every slot whose start lies in [start_time, end_time).
    """
    staff_id: str
    date: Date
    start_time: TimeOfDay
    end_time: TimeOfDay
    status: str | None = None

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Booking start {self.start_time} must be before end {self.end_time}"
            )

    def is_active(self, excluded_statuses=EXCLUDED_STATUSES) -> bool:
        """Cancelled and no-show appointments free their slots."""
        return self.status not in excluded_statuses

    def overlaps(self, start: int, end: int) -> bool:
        """
        Check if [start, end) in minutes collides with this booking.

        The range starts inside the booking, ends inside it, or contains it
        entirely. The last case catches bookings that do not align to the grid.
        """
        own_start = self.start_time.minutes
        own_end = self.end_time.minutes
        return (
            (own_start <= start < own_end)
            or (own_start < end <= own_end)
            or (start <= own_start and end >= own_end)
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "BookedInterval":
        """Build an interval from an ``appointments`` row."""
        status = record.get("status")
        return cls(
            staff_id=str(record["staff_id"]),
            date=parse_date(record["date"]),
            start_time=TimeOfDay.parse(record["start_time"]),
            end_time=TimeOfDay.parse(record["end_time"]),
            status=str(status) if status is not None else None,
        )


@dataclass(frozen=True)
class SlotState:
    """
    Availability and booking state of one grid slot for a staff member.
    """
    time: TimeOfDay
    is_within_availability: bool
    is_booked: bool
    is_past: bool = False

    @property
    def selectable(self) -> bool:
        return self.is_within_availability and not self.is_booked and not self.is_past

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": str(self.time),
            "available": self.is_within_availability,
            "booked": self.is_booked,
            "past": self.is_past,
        }


@dataclass(frozen=True)
class ServiceItem:
    """A salon service chosen for an appointment."""
    service_id: str
    name: str = ""
    duration_minutes: int | None = None  # None falls back to the configured default


@dataclass(frozen=True)
class BookingRequest:
    """
    Raw booking request as submitted by the booking UI.

    Date and start time stay in their wire form until validation.
    """
    staff_id: str
    date: "str | date_type"
    start_time: "str | TimeOfDay"
    duration_slots: int = 1
    services: Tuple[ServiceItem, ...] = ()


@dataclass(frozen=True)
class AppointmentDraft:
    """
    Validated appointment ready to be handed to the store.

    The end time is always derived, never supplied by the caller.
    """
    staff_id: str
    date: Date
    start_time: TimeOfDay
    end_time: TimeOfDay
    status: AppointmentStatus = AppointmentStatus.PENDING
    services: Tuple[ServiceItem, ...] = ()

    def duration_minutes(self) -> int:
        return self.end_time.minutes - self.start_time.minutes

    def as_interval(self) -> BookedInterval:
        """Occupancy of this draft once it is booked."""
        return BookedInterval(
            staff_id=self.staff_id,
            date=self.date,
            start_time=self.start_time,
            end_time=self.end_time,
            status=self.status.value,
        )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to an ``appointments`` row."""
        return {
            "staff_id": self.staff_id,
            "date": self.date.isoformat(),
            "start_time": str(self.start_time),
            "end_time": str(self.end_time),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class PersistedAppointment:
    """An appointment accepted by the store."""
    appointment_id: str
    draft: AppointmentDraft

    @property
    def staff_id(self) -> str:
        return self.draft.staff_id

    @property
    def date(self) -> Date:
        return self.draft.date

    @property
    def start_time(self) -> TimeOfDay:
        return self.draft.start_time

    @property
    def end_time(self) -> TimeOfDay:
        return self.draft.end_time

    @property
    def status(self) -> AppointmentStatus:
        return self.draft.status

    def to_record(self) -> Dict[str, Any]:
        return {"id": self.appointment_id, **self.draft.to_record()}

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PersistedAppointment":
        """Build from an ``appointments`` row that carries its id."""
        draft = AppointmentDraft(
            staff_id=str(record["staff_id"]),
            date=parse_date(record["date"]),
            start_time=TimeOfDay.parse(record["start_time"]),
            end_time=TimeOfDay.parse(record["end_time"]),
            status=AppointmentStatus(record.get("status") or AppointmentStatus.PENDING.value),
        )
        return cls(appointment_id=str(record["id"]), draft=draft)
