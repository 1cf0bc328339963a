"""
Validation of booking requests against planned slots.

A booking attempt moves Draft -> Validated (draft handed to the store) or
Draft -> Rejected. Rejections are returned as typed ``BookingError`` values;
nothing here raises for an expected user mistake.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from math import ceil
from typing import Iterable, Optional, Sequence

from .exceptions import InvalidDateFormat, InvalidTimeFormat
from .models import (
    AppointmentDraft,
    AppointmentStatus,
    BookingRequest,
    ServiceItem,
    SlotState,
    TimeOfDay,
    parse_date,
)
from .slot_planner import SlotPlanner
from .time_grid import from_minutes

logger = logging.getLogger(__name__)


class BookingErrorKind(str, Enum):
    """Expected, user-facing reasons a booking is refused."""
    INVALID_TIME_FORMAT = "invalid_time_format"
    INVALID_DATE_FORMAT = "invalid_date_format"
    MISSING_FIELD = "missing_field"
    PAST_DATE = "past_date"
    PAST_TIME = "past_time"
    SLOT_UNAVAILABLE = "slot_unavailable"
    INSUFFICIENT_CONTIGUOUS_AVAILABILITY = "insufficient_contiguous_availability"
    CONFLICT_AT_COMMIT = "conflict_at_commit"


@dataclass(frozen=True)
class BookingError:
    kind: BookingErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one booking request."""
    draft: Optional[AppointmentDraft] = None
    error: Optional[BookingError] = None

    @property
    def ok(self) -> bool:
        return self.draft is not None

    @classmethod
    def success(cls, draft: AppointmentDraft) -> "ValidationResult":
        return cls(draft=draft)

    @classmethod
    def failure(cls, kind: BookingErrorKind, message: str) -> "ValidationResult":
        return cls(error=BookingError(kind, message))


class AppointmentValidator:
    """
    Checks a booking request against the planner's slot list and the clock.

    Checks run in a fixed order and the first failure wins:
    required fields, past date, past time, slot availability, contiguous
    duration. On success the end time is derived from the longer of the
    selected slot span and the services' own durations, and that whole span
    must be free as well.
    """

    def __init__(
        self,
        planner: Optional[SlotPlanner] = None,
        default_service_minutes: int = 30
    ):
        self.planner = planner or SlotPlanner()
        self.default_service_minutes = default_service_minutes

    def validate(
        self,
        request: BookingRequest,
        available_slots: Sequence[SlotState],
        now: datetime
    ) -> ValidationResult:
        """
        Validate a booking request.

        Args:
            request: Booking request from the UI
            available_slots: Planner output for the request's staff and date
            now: Current local wall-clock datetime

        Returns:
            ValidationResult carrying either a pending draft or the first error
        """
        missing = [
            name for name in ("staff_id", "date", "start_time")
            if not getattr(request, name)
        ]
        if missing:
            return ValidationResult.failure(
                BookingErrorKind.MISSING_FIELD,
                f"Please provide: {', '.join(missing)}"
            )

        try:
            target = parse_date(request.date)
        except InvalidDateFormat as exc:
            return ValidationResult.failure(BookingErrorKind.INVALID_DATE_FORMAT, str(exc))

        try:
            start = TimeOfDay.parse(request.start_time)
        except InvalidTimeFormat as exc:
            return ValidationResult.failure(BookingErrorKind.INVALID_TIME_FORMAT, str(exc))

        today = parse_date(now)
        if target < today:
            return ValidationResult.failure(
                BookingErrorKind.PAST_DATE,
                "Cannot book appointments for past dates"
            )

        if target == today and start.minutes <= now.hour * 60 + now.minute:
            return ValidationResult.failure(
                BookingErrorKind.PAST_TIME,
                "Cannot book appointments for past times"
            )

        slot = next((s for s in available_slots if s.time == start), None)
        if slot is None:
            return ValidationResult.failure(
                BookingErrorKind.SLOT_UNAVAILABLE,
                f"{start.format_display()} is not available for this staff member"
            )
        if slot.is_booked:
            return ValidationResult.failure(
                BookingErrorKind.SLOT_UNAVAILABLE,
                "This time slot is already booked, please choose another"
            )

        if not self.planner.can_fit_duration(start, available_slots, request.duration_slots):
            longest = self.planner.max_contiguous_duration(start, available_slots)
            return ValidationResult.failure(
                BookingErrorKind.INSUFFICIENT_CONTIGUOUS_AVAILABILITY,
                f"Only {longest} consecutive slot(s) are free from {start.format_display()}"
            )

        duration = self.effective_duration_minutes(request.duration_slots, request.services)
        try:
            end = from_minutes(start.minutes + duration)
        except InvalidTimeFormat:
            return ValidationResult.failure(
                BookingErrorKind.INSUFFICIENT_CONTIGUOUS_AVAILABILITY,
                "The selected services would run past midnight"
            )

        # Services may outlast the selected slots; the whole span must be free
        span_slots = ceil(duration / self.planner.grid.slot_minutes)
        if span_slots > request.duration_slots and not self.planner.can_fit_duration(
            start, available_slots, span_slots
        ):
            longest = self.planner.max_contiguous_duration(start, available_slots)
            return ValidationResult.failure(
                BookingErrorKind.INSUFFICIENT_CONTIGUOUS_AVAILABILITY,
                f"The selected services need {span_slots} consecutive slots, "
                f"only {longest} are free from {start.format_display()}"
            )

        draft = AppointmentDraft(
            staff_id=request.staff_id,
            date=target,
            start_time=start,
            end_time=end,
            status=AppointmentStatus.PENDING,
            services=tuple(request.services),
        )
        logger.debug("Validated draft %s %s %s-%s", draft.staff_id, draft.date, start, end)
        return ValidationResult.success(draft)

    def services_duration_minutes(self, services: Iterable[ServiceItem]) -> int:
        """Total intrinsic duration of the services; unknown durations use the default."""
        return sum(
            service.duration_minutes or self.default_service_minutes
            for service in services
        )

    def effective_duration_minutes(
        self,
        duration_slots: int,
        services: Iterable[ServiceItem]
    ) -> int:
        """The longer of the selected slot span and the services' own duration."""
        selected = duration_slots * self.planner.grid.slot_minutes
        return max(self.services_duration_minutes(services), selected)
