"""
In-memory booking store backed by an optional JSON data file.
"""

import json
import logging
import threading
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List

from pendulum import Date

from ..domain.exceptions import AppointmentConflictError
from ..domain.models import (
    EXCLUDED_STATUSES,
    AppointmentDraft,
    AppointmentStatus,
    AvailabilityWindow,
    BookedInterval,
    PersistedAppointment,
    parse_date,
)

logger = logging.getLogger(__name__)


class InMemoryBookingStore:
    """
    Store that keeps availability windows and appointments in process memory.

    Writes are checked against the stored appointments under a lock, so this
    store gives the same authoritative no-overlap guarantee a database
    exclusion constraint would. Useful for demos, the CLI and tests.

    Data file format:
    {
        "availability": [
            {"staff_id": "s1", "date": "2024-06-10", "start_time": "09:00",
             "end_time": "13:00", "is_available": true}
        ],
        "appointments": [
            {"id": "a1", "staff_id": "s1", "date": "2024-06-10",
             "start_time": "10:00", "end_time": "10:30", "status": "confirmed"}
        ]
    }
    """

    def __init__(
        self,
        availability: Iterable[AvailabilityWindow] = (),
        appointments: Iterable[PersistedAppointment] = (),
        excluded_statuses: Iterable[str] = EXCLUDED_STATUSES,
    ):
        self._availability: List[AvailabilityWindow] = list(availability)
        self._appointments: List[PersistedAppointment] = list(appointments)
        self._excluded_statuses = frozenset(excluded_statuses)
        self._lock = threading.Lock()

    @classmethod
    def from_records(
        cls,
        data: Dict[str, Any],
        excluded_statuses: Iterable[str] = EXCLUDED_STATUSES,
    ) -> "InMemoryBookingStore":
        """Build a store from raw rows, skipping rows that cannot be parsed."""
        availability: List[AvailabilityWindow] = []
        for record in data.get("availability", []):
            try:
                availability.append(AvailabilityWindow.from_record(record))
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping availability row %r: %s", record, exc)

        appointments: List[PersistedAppointment] = []
        for record in data.get("appointments", []):
            try:
                appointments.append(PersistedAppointment.from_record(record))
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping appointment row %r: %s", record, exc)

        return cls(availability, appointments, excluded_statuses)

    @classmethod
    def from_json_file(
        cls,
        data_file: Path,
        excluded_statuses: Iterable[str] = EXCLUDED_STATUSES,
    ) -> "InMemoryBookingStore":
        """
        Load store contents from a JSON data file.

        A missing file yields an empty store.
        """
        if not data_file.exists():
            logger.info("Data file %s not found, starting with an empty store", data_file)
            return cls(excluded_statuses=excluded_statuses)

        with open(data_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Data file {data_file} must contain a JSON object")

        return cls.from_records(data, excluded_statuses)

    def to_records(self) -> Dict[str, List[Dict[str, Any]]]:
        with self._lock:
            return {
                "availability": [
                    {
                        "staff_id": window.staff_id,
                        "date": window.date.isoformat(),
                        "start_time": str(window.start_time),
                        "end_time": str(window.end_time),
                        "is_available": window.is_available,
                    }
                    for window in self._availability
                ],
                "appointments": [appointment.to_record() for appointment in self._appointments],
            }

    def dump_json_file(self, data_file: Path) -> None:
        """Write the current store contents back to a JSON data file."""
        data_file.parent.mkdir(parents=True, exist_ok=True)
        with open(data_file, "w", encoding="utf-8") as f:
            json.dump(self.to_records(), f, indent=2)

    async def fetch_availability(self, staff_id: str, date: Date) -> List[AvailabilityWindow]:
        target = parse_date(date)
        with self._lock:
            return [
                window for window in self._availability
                if window.staff_id == staff_id and window.date == target
            ]

    async def fetch_booked_intervals(self, date: Date) -> List[BookedInterval]:
        target = parse_date(date)
        with self._lock:
            return [
                appointment.draft.as_interval()
                for appointment in self._appointments
                if appointment.date == target
                and appointment.status.value not in self._excluded_statuses
            ]

    async def persist_appointment(self, draft: AppointmentDraft) -> PersistedAppointment:
        """
        Store a draft unless it overlaps an active appointment of the same staff.

        Raises:
            AppointmentConflictError: If the range is already taken
        """
        with self._lock:
            for existing in self._appointments:
                if (
                    existing.staff_id == draft.staff_id
                    and existing.date == draft.date
                    and existing.status.value not in self._excluded_statuses
                    and existing.draft.as_interval().overlaps(
                        draft.start_time.minutes, draft.end_time.minutes
                    )
                ):
                    raise AppointmentConflictError(
                        f"{draft.staff_id} already has appointment {existing.appointment_id} "
                        f"from {existing.start_time} to {existing.end_time}"
                    )

            appointment = PersistedAppointment(appointment_id=str(uuid.uuid4()), draft=draft)
            self._appointments.append(appointment)

        return appointment

    async def update_status(self, appointment_id: str, status: AppointmentStatus) -> PersistedAppointment:
        """
        Change an appointment's status, e.g. to cancel it.

        Raises:
            KeyError: If no appointment has this id
        """
        with self._lock:
            for index, appointment in enumerate(self._appointments):
                if appointment.appointment_id == appointment_id:
                    updated = PersistedAppointment(
                        appointment_id=appointment_id,
                        draft=replace(appointment.draft, status=AppointmentStatus(status)),
                    )
                    self._appointments[index] = updated
                    return updated

        raise KeyError(f"Unknown appointment: {appointment_id}")
