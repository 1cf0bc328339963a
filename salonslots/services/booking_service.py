"""
Application services for planning slots and booking appointments.

The service fetches fresh availability and booking snapshots through a store
adapter on every call and delegates all slot arithmetic to the domain-level
``SlotPlanner`` and ``AppointmentValidator``. The store stays behind a small
protocol so the hosted-database adapter and the in-memory store are
interchangeable.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import pendulum
from pendulum import Date

from ..domain.exceptions import AppointmentConflictError, InvalidDateFormat
from ..domain.models import (
    AppointmentDraft,
    AvailabilityWindow,
    BookedInterval,
    BookingRequest,
    PersistedAppointment,
    SlotState,
    parse_date,
)
from ..domain.slot_planner import SlotPlanner
from ..domain.validator import (
    AppointmentValidator,
    BookingError,
    BookingErrorKind,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class BookingStoreProtocol(Protocol):
    """Protocol describing the storage behaviour needed by the service."""

    async def fetch_availability(self, staff_id: str, date: Date) -> List[AvailabilityWindow]:
        """Return the staff member's availability windows for the date."""

    async def fetch_booked_intervals(self, date: Date) -> List[BookedInterval]:
        """Return the occupying bookings of all staff for the date."""

    async def persist_appointment(self, draft: AppointmentDraft) -> PersistedAppointment:
        """Store the draft, raising AppointmentConflictError if the slot was taken."""


@dataclass(frozen=True)
class BookingOutcome:
    """Result of one booking attempt."""
    appointment: Optional[PersistedAppointment] = None
    error: Optional[BookingError] = None

    @property
    def ok(self) -> bool:
        return self.appointment is not None


@dataclass(frozen=True)
class BatchBookingOutcome:
    """
    Result of booking several pending appointments together.

    ``failed_index`` points at the request that stopped the batch.
    """
    appointments: List[PersistedAppointment] = field(default_factory=list)
    error: Optional[BookingError] = None
    failed_index: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BookingService:
    """
    Orchestrates snapshot retrieval, slot planning, validation and persistence.

    Every call reads fresh snapshots; the service never caches availability or
    bookings between calls. Local validation is advisory: the store's write is
    the authoritative conflict check and its rejection is reported as
    ``CONFLICT_AT_COMMIT``.
    """

    def __init__(
        self,
        store: BookingStoreProtocol,
        planner: Optional[SlotPlanner] = None,
        validator: Optional[AppointmentValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        timezone: Optional[str] = None,
    ) -> None:
        self._store = store
        self._planner = planner or SlotPlanner()
        self._validator = validator or AppointmentValidator(planner=self._planner)
        self._clock = clock or (lambda: pendulum.now(timezone))

    @property
    def planner(self) -> SlotPlanner:
        return self._planner

    def now(self) -> datetime:
        return self._clock()

    async def fetch_snapshot(
        self,
        staff_id: str,
        date: Date,
    ) -> Tuple[List[AvailabilityWindow], List[BookedInterval]]:
        """Read availability and bookings for one planning cycle."""
        windows, intervals = await asyncio.gather(
            self._store.fetch_availability(staff_id, date),
            self._store.fetch_booked_intervals(date),
        )
        return list(windows), list(intervals)

    async def available_slots(
        self,
        *,
        staff_id: str,
        date: "str | Date",
        now: Optional[datetime] = None,
    ) -> List[SlotState]:
        """
        Compute the bookable slot list for a staff member on a date.

        Raises:
            InvalidDateFormat: If the date string is malformed
            StoreUnavailableError: If the store cannot be reached
        """
        now = now or self.now()
        target = parse_date(date)

        if target < parse_date(now):
            return []

        windows, intervals = await self.fetch_snapshot(staff_id, target)
        return self._planner.available_slots(staff_id, target, now, windows, intervals)

    async def day_overview(
        self,
        *,
        date: "str | Date",
        staff_ids: Sequence[str],
        now: Optional[datetime] = None,
    ) -> Dict[str, List[SlotState]]:
        """Full-day slot grid for each staff member, unavailable slots included."""
        now = now or self.now()
        target = parse_date(date)

        intervals = await self._store.fetch_booked_intervals(target)
        windows_per_staff = await asyncio.gather(
            *(self._store.fetch_availability(staff_id, target) for staff_id in staff_ids)
        )

        return {
            staff_id: self._planner.day_grid(staff_id, target, now, windows, intervals)
            for staff_id, windows in zip(staff_ids, windows_per_staff)
        }

    async def validate(
        self,
        request: BookingRequest,
        *,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """Validate a request against freshly planned slots without persisting it."""
        return await self._validate_with(request, now or self.now(), extra_bookings=())

    async def book(
        self,
        request: BookingRequest,
        *,
        now: Optional[datetime] = None,
    ) -> BookingOutcome:
        """
        Validate a booking request and hand the draft to the store.

        Returns:
            BookingOutcome with the persisted appointment, or the first error
        """
        result = await self.validate(request, now=now)
        if not result.ok:
            return BookingOutcome(error=result.error)

        return await self._persist(result.draft)

    async def book_many(
        self,
        requests: Sequence[BookingRequest],
        *,
        now: Optional[datetime] = None,
    ) -> BatchBookingOutcome:
        """
        Book a cart of pending appointments.

        All requests are validated before anything is written, each later
        request seeing the earlier drafts as booked. Persistence stops at the
        first conflict reported by the store.
        """
        now = now or self.now()
        drafts: List[AppointmentDraft] = []

        for index, request in enumerate(requests):
            result = await self._validate_with(
                request,
                now,
                extra_bookings=[draft.as_interval() for draft in drafts],
            )
            if not result.ok:
                return BatchBookingOutcome(error=result.error, failed_index=index)
            drafts.append(result.draft)

        persisted: List[PersistedAppointment] = []
        for index, draft in enumerate(drafts):
            outcome = await self._persist(draft)
            if not outcome.ok:
                return BatchBookingOutcome(
                    appointments=persisted,
                    error=outcome.error,
                    failed_index=index,
                )
            persisted.append(outcome.appointment)

        return BatchBookingOutcome(appointments=persisted)

    async def _validate_with(
        self,
        request: BookingRequest,
        now: datetime,
        extra_bookings: Sequence[BookedInterval],
    ) -> ValidationResult:
        slots: List[SlotState] = []

        try:
            target = parse_date(request.date) if request.date else None
        except InvalidDateFormat:
            target = None

        # Nothing to plan when the validator will reject on fields or date anyway
        if request.staff_id and target is not None and target >= parse_date(now):
            windows, intervals = await self.fetch_snapshot(request.staff_id, target)
            slots = self._planner.available_slots(
                request.staff_id,
                target,
                now,
                windows,
                [*intervals, *extra_bookings],
            )

        return self._validator.validate(request, slots, now)

    async def _persist(self, draft: AppointmentDraft) -> BookingOutcome:
        try:
            appointment = await self._store.persist_appointment(draft)
        except AppointmentConflictError as exc:
            logger.warning(
                "Store rejected %s on %s at %s: %s",
                draft.staff_id, draft.date, draft.start_time, exc
            )
            return BookingOutcome(
                error=BookingError(
                    BookingErrorKind.CONFLICT_AT_COMMIT,
                    "This time slot was booked in the meantime, please choose another",
                )
            )

        logger.info(
            "Booked appointment %s for %s on %s %s-%s",
            appointment.appointment_id,
            draft.staff_id,
            draft.date,
            draft.start_time,
            draft.end_time,
        )
        return BookingOutcome(appointment=appointment)
