"""
Tests for availability resolution and booking conflict detection.
"""

import pendulum

from salonslots.domain.availability import AvailabilityResolver
from salonslots.domain.conflicts import BookingConflictDetector
from salonslots.domain.models import AvailabilityWindow, BookedInterval, TimeOfDay

DAY = pendulum.date(2024, 6, 10)


def _window(start: str, end: str, staff_id: str = "s1", is_available: bool = True, date=DAY):
    return AvailabilityWindow(
        staff_id=staff_id,
        date=date,
        start_time=TimeOfDay.parse(start),
        end_time=TimeOfDay.parse(end),
        is_available=is_available,
    )


def _booking(start: str, end: str, staff_id: str = "s1", status="confirmed"):
    return BookedInterval(
        staff_id=staff_id,
        date=DAY,
        start_time=TimeOfDay.parse(start),
        end_time=TimeOfDay.parse(end),
        status=status,
    )


class TestAvailabilityResolver:
    """Tests for AvailabilityResolver."""

    def test_no_windows_means_whole_grid(self):
        """Test the default-open fallback for staff without a schedule."""
        resolver = AvailabilityResolver()

        slots = resolver.open_slots("s1", DAY, [])

        assert len(slots) == 29
        assert resolver.is_available("s1", DAY, TimeOfDay.parse("23:30"), [])

    def test_windows_of_other_staff_or_dates_are_ignored(self):
        """Test that only the staff member's own windows on the date count."""
        resolver = AvailabilityResolver()
        windows = [
            _window("09:00", "10:00", staff_id="s2"),
            _window("09:00", "10:00", date=pendulum.date(2024, 6, 11)),
        ]

        assert not resolver.has_schedule("s1", DAY, windows)
        assert len(resolver.open_slots("s1", DAY, windows)) == 29

    def test_window_restricts_slots(self):
        """Test that a recorded window limits the open slots."""
        resolver = AvailabilityResolver()

        slots = resolver.open_slots("s1", DAY, [_window("09:00", "12:00")])

        assert [str(slot) for slot in slots] == [
            "09:00", "09:30", "10:00", "10:30", "11:00", "11:30"
        ]

    def test_multiple_windows_combine(self):
        """Test a split shift."""
        resolver = AvailabilityResolver()
        windows = [_window("09:00", "10:00"), _window("15:00", "16:00")]

        slots = resolver.open_slots("s1", DAY, windows)

        assert [str(slot) for slot in slots] == ["09:00", "09:30", "15:00", "15:30"]

    def test_unavailable_window_disables_fallback(self):
        """Test that a day marked unavailable offers no slots at all."""
        resolver = AvailabilityResolver()
        windows = [_window("09:00", "23:30", is_available=False)]

        assert resolver.has_schedule("s1", DAY, windows)
        assert resolver.open_slots("s1", DAY, windows) == []
        assert not resolver.is_available("s1", DAY, TimeOfDay.parse("09:00"), windows)


class TestBookingConflictDetector:
    """Tests for BookingConflictDetector."""

    def test_booking_blocks_exactly_its_span(self):
        """Test that a one hour booking blocks two slots and nothing around them."""
        detector = BookingConflictDetector()

        blocked = detector.blocked_slots("s1", [_booking("14:00", "15:00")], DAY)

        assert blocked["14:00"] is True
        assert blocked["14:30"] is True
        assert blocked["13:30"] is False
        assert blocked["15:00"] is False
        assert len(blocked) == 29

    def test_unaligned_booking_blocks_touched_slots(self):
        """Test that a booking off the grid blocks every slot it overlaps."""
        detector = BookingConflictDetector()

        blocked = detector.blocked_slots("s1", [_booking("13:45", "14:15")], DAY)

        assert blocked["13:30"] is True
        assert blocked["14:00"] is True
        assert blocked["14:30"] is False

    def test_cancelled_and_no_show_never_block(self):
        """Test status exclusion even when the store returns such rows."""
        detector = BookingConflictDetector()
        intervals = [
            _booking("14:00", "15:00", status="cancelled"),
            _booking("16:00", "17:00", status="no_show"),
        ]

        assert not any(detector.blocked_slots("s1", intervals, DAY).values())

    def test_other_staff_bookings_do_not_block(self):
        """Test per-staff isolation."""
        detector = BookingConflictDetector()

        assert not detector.is_blocked(
            TimeOfDay.parse("14:00"), "s1", [_booking("14:00", "15:00", staff_id="s2")], DAY
        )

    def test_blocked_map_per_staff(self):
        """Test the map of blocked slots for every booked staff member."""
        detector = BookingConflictDetector()
        intervals = [_booking("10:00", "10:30", staff_id="s2"), _booking("11:00", "11:30")]

        result = detector.blocked_map(intervals, DAY)

        assert list(result) == ["s1", "s2"]
        assert result["s1"]["11:00"] is True
        assert result["s2"]["10:00"] is True
        assert result["s2"]["11:00"] is False
