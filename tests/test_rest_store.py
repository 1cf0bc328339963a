"""
Tests for the REST booking store client.
"""

import asyncio

import pendulum
import pytest
import requests

from salonslots.adapters.rest_store import RestBookingStore
from salonslots.domain.exceptions import (
    AppointmentConflictError,
    StoreError,
    StoreUnavailableError,
)
from salonslots.domain.models import AppointmentDraft, TimeOfDay

DAY = pendulum.date(2024, 6, 10)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Records requests and replays a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def _handle(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._handle("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._handle("POST", url, **kwargs)


def _store(session) -> RestBookingStore:
    return RestBookingStore("https://db.example.co/", "secret", session=session)


def _draft() -> AppointmentDraft:
    return AppointmentDraft(
        staff_id="s1",
        date=DAY,
        start_time=TimeOfDay.parse("10:30"),
        end_time=TimeOfDay.parse("11:30"),
    )


class TestRestBookingStore:
    """Tests for RestBookingStore."""

    def test_fetch_availability_filters_and_normalizes(self):
        """Test the query and the HH:MM:SS to HH:MM conversion."""
        session = FakeSession(FakeResponse(payload=[
            {"staff_id": "s1", "date": "2024-06-10", "start_time": "09:00:00",
             "end_time": "13:00:00", "is_available": True},
        ]))

        windows = asyncio.run(_store(session).fetch_availability("s1", DAY))

        method, url, kwargs = session.requests[0]
        assert url == "https://db.example.co/rest/v1/staff_availability"
        assert kwargs["params"]["staff_id"] == "eq.s1"
        assert kwargs["params"]["date"] == "eq.2024-06-10"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert str(windows[0].end_time) == "13:00"

    def test_fetch_booked_intervals_excludes_statuses_server_side(self):
        """Test the status filter sent with the bookings query."""
        session = FakeSession(FakeResponse(payload=[
            {"staff_id": "s1", "date": "2024-06-10", "start_time": "10:00:00",
             "end_time": "10:30:00", "status": "confirmed"},
        ]))

        intervals = asyncio.run(_store(session).fetch_booked_intervals(DAY))

        assert session.requests[0][2]["params"]["status"] == "not.in.(cancelled,no_show)"
        assert str(intervals[0].start_time) == "10:00"

    def test_configured_excluded_statuses_drive_filter(self):
        """Test that a narrowed status list keeps no-shows occupying their slot."""
        session = FakeSession(FakeResponse(payload=[
            {"staff_id": "s1", "date": "2024-06-10", "start_time": "10:00:00",
             "end_time": "10:30:00", "status": "no_show"},
        ]))
        store = RestBookingStore(
            "https://db.example.co", "secret", session=session, excluded_statuses=["cancelled"]
        )

        intervals = asyncio.run(store.fetch_booked_intervals(DAY))

        assert session.requests[0][2]["params"]["status"] == "not.in.(cancelled)"
        assert intervals[0].status == "no_show"

    def test_empty_excluded_statuses_sends_no_status_filter(self):
        """Test that every appointment is fetched when nothing is excluded."""
        session = FakeSession(FakeResponse(payload=[]))
        store = RestBookingStore("https://db.example.co", "secret", session=session, excluded_statuses=[])

        asyncio.run(store.fetch_booked_intervals(DAY))

        assert "status" not in session.requests[0][2]["params"]

    def test_persist_returns_created_row(self):
        """Test a successful insert."""
        session = FakeSession(FakeResponse(status_code=201, payload=[{"id": 42}]))

        appointment = asyncio.run(_store(session).persist_appointment(_draft()))

        method, url, kwargs = session.requests[0]
        assert method == "POST"
        assert kwargs["headers"]["Prefer"] == "return=representation"
        assert kwargs["json"]["start_time"] == "10:30"
        assert appointment.appointment_id == "42"

    def test_conflict_status_raises_conflict(self):
        """Test that HTTP 409 is mapped to a commit conflict."""
        session = FakeSession(FakeResponse(status_code=409, text="overlap"))

        with pytest.raises(AppointmentConflictError):
            asyncio.run(_store(session).persist_appointment(_draft()))

    def test_connection_error_raises_unavailable(self):
        """Test that network failures become StoreUnavailableError."""
        session = FakeSession(error=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(StoreUnavailableError):
            asyncio.run(_store(session).fetch_booked_intervals(DAY))

    def test_server_error_raises_unavailable(self):
        """Test that HTTP 5xx on write becomes StoreUnavailableError."""
        session = FakeSession(FakeResponse(status_code=503))

        with pytest.raises(StoreUnavailableError):
            asyncio.run(_store(session).persist_appointment(_draft()))

    def test_missing_id_raises_store_error(self):
        """Test that an empty representation is refused."""
        session = FakeSession(FakeResponse(status_code=201, payload=[]))

        with pytest.raises(StoreError):
            asyncio.run(_store(session).persist_appointment(_draft()))
