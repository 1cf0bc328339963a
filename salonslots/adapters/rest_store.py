"""
Booking store client for a hosted PostgREST-style database API.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List

import requests
from pendulum import Date

from ..domain.exceptions import AppointmentConflictError, StoreError, StoreUnavailableError
from ..domain.models import (
    EXCLUDED_STATUSES,
    AppointmentDraft,
    AvailabilityWindow,
    BookedInterval,
    PersistedAppointment,
    parse_date,
)

logger = logging.getLogger(__name__)


class RestBookingStore:
    """
    Client for the ``staff_availability`` and ``appointments`` tables.

    Reads filter server-side on staff, date and status; the write relies on
    the database's overlap constraint and maps HTTP 409 to a commit conflict.
    """

    AVAILABILITY_TABLE = "staff_availability"
    APPOINTMENTS_TABLE = "appointments"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30,
        session: requests.Session | None = None,
        excluded_statuses: Iterable[str] = EXCLUDED_STATUSES,
    ):
        """
        Initialize the store client.

        Args:
            base_url: Project URL, e.g. https://xyz.example.co
            api_key: API key sent as apikey and bearer token
            timeout: Request timeout in seconds
            session: Optional preconfigured requests session
            excluded_statuses: Appointment statuses that never occupy a slot
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.excluded_statuses = frozenset(excluded_statuses)
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    async def fetch_availability(self, staff_id: str, date: Date) -> List[AvailabilityWindow]:
        target = parse_date(date)
        rows = await asyncio.to_thread(
            self._get,
            self.AVAILABILITY_TABLE,
            {
                "select": "staff_id,date,start_time,end_time,is_available",
                "staff_id": f"eq.{staff_id}",
                "date": f"eq.{target.isoformat()}",
            },
        )

        windows: List[AvailabilityWindow] = []
        for row in rows:
            try:
                windows.append(AvailabilityWindow.from_record(self._normalize_row(row)))
            except (KeyError, ValueError) as exc:
                logger.warning("Could not parse availability row %r: %s", row, exc)
        return windows

    async def fetch_booked_intervals(self, date: Date) -> List[BookedInterval]:
        target = parse_date(date)
        params = {
            "select": "staff_id,date,start_time,end_time,status",
            "date": f"eq.{target.isoformat()}",
        }
        if self.excluded_statuses:
            params["status"] = f"not.in.({','.join(sorted(self.excluded_statuses))})"

        rows = await asyncio.to_thread(self._get, self.APPOINTMENTS_TABLE, params)

        intervals: List[BookedInterval] = []
        for row in rows:
            try:
                intervals.append(BookedInterval.from_record(self._normalize_row(row)))
            except (KeyError, ValueError) as exc:
                logger.warning("Could not parse appointment row %r: %s", row, exc)
        return intervals

    async def persist_appointment(self, draft: AppointmentDraft) -> PersistedAppointment:
        """
        Insert the draft into the appointments table.

        Raises:
            AppointmentConflictError: If the database rejects the overlapping row
            StoreUnavailableError: If the API cannot be reached
            StoreError: If the response cannot be used
        """
        rows = await asyncio.to_thread(
            self._post,
            self.APPOINTMENTS_TABLE,
            draft.to_record(),
        )

        try:
            appointment_id = rows[0]["id"]
        except (IndexError, KeyError, TypeError) as exc:
            raise StoreError(f"Store did not return the created appointment: {rows!r}") from exc

        return PersistedAppointment(appointment_id=str(appointment_id), draft=draft)

    def _get(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            response = self.session.get(
                self._table_url(table),
                headers=self.headers,
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

        except requests.exceptions.RequestException as e:
            raise StoreUnavailableError(f"Failed to read {table}: {e}") from e

    def _post(self, table: str, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            response = self.session.post(
                self._table_url(table),
                headers={**self.headers, "Prefer": "return=representation"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StoreUnavailableError(f"Failed to write {table}: {e}") from e

        if response.status_code == 409:
            raise AppointmentConflictError(f"Store rejected overlapping appointment: {response.text}")

        try:
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise StoreUnavailableError(f"Failed to write {table}: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"Store returned invalid JSON: {e}") from e

    @staticmethod
    def _normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
        """Drop seconds from time columns ("09:00:00" -> "09:00")."""
        normalized = dict(row)
        for key in ("start_time", "end_time"):
            value = normalized.get(key)
            if isinstance(value, str) and value.count(":") == 2:
                normalized[key] = value.rsplit(":", 1)[0]
        return normalized
