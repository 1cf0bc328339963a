"""
Tests for slot planning logic.
"""

import pendulum

from salonslots.domain.models import AvailabilityWindow, BookedInterval, SlotState, TimeOfDay
from salonslots.domain.slot_planner import SlotPlanner

DAY = pendulum.date(2024, 6, 10)
BEFORE = pendulum.datetime(2024, 6, 9, 8, 0)


def _window(start: str, end: str, is_available: bool = True):
    return AvailabilityWindow(
        staff_id="s1",
        date=DAY,
        start_time=TimeOfDay.parse(start),
        end_time=TimeOfDay.parse(end),
        is_available=is_available,
    )


def _booking(start: str, end: str, status="confirmed"):
    return BookedInterval(
        staff_id="s1",
        date=DAY,
        start_time=TimeOfDay.parse(start),
        end_time=TimeOfDay.parse(end),
        status=status,
    )


def _slot(time: str, booked: bool = False) -> SlotState:
    return SlotState(TimeOfDay.parse(time), is_within_availability=True, is_booked=booked)


class TestAvailableSlots:
    """Tests for SlotPlanner.available_slots."""

    def test_past_date_returns_empty(self):
        """Test that nothing can be planned for a date before today."""
        planner = SlotPlanner()

        assert planner.available_slots("s1", "2024-06-09", pendulum.datetime(2024, 6, 10, 8, 0), [], []) == []

    def test_default_open_on_today(self):
        """Test that staff without windows get every future slot of today."""
        planner = SlotPlanner()
        now = pendulum.datetime(2024, 6, 10, 12, 10)

        slots = planner.available_slots("s1", DAY, now, [], [])

        assert str(slots[0].time) == "12:30"
        assert str(slots[-1].time) == "23:30"
        assert len(slots) == 23
        assert all(slot.is_within_availability and not slot.is_booked for slot in slots)

    def test_slot_equal_to_now_is_dropped(self):
        """Test that a slot starting at the current minute is already past."""
        planner = SlotPlanner()
        now = pendulum.datetime(2024, 6, 10, 12, 30)

        slots = planner.available_slots("s1", DAY, now, [], [])

        assert str(slots[0].time) == "13:00"

    def test_window_overrides_default(self):
        """Test that an explicit window limits the slots offered."""
        planner = SlotPlanner()

        slots = planner.available_slots("s1", DAY, BEFORE, [_window("09:00", "12:00")], [])

        assert [str(slot.time) for slot in slots] == [
            "09:00", "09:30", "10:00", "10:30", "11:00", "11:30"
        ]

    def test_booking_is_flagged_not_hidden(self):
        """Test that booked slots inside availability stay in the list, flagged."""
        planner = SlotPlanner()

        slots = planner.available_slots(
            "s1", DAY, BEFORE, [_window("13:00", "16:00")], [_booking("14:00", "15:00")]
        )
        booked = {str(slot.time): slot.is_booked for slot in slots}

        assert booked == {
            "13:00": False,
            "13:30": False,
            "14:00": True,
            "14:30": True,
            "15:00": False,
            "15:30": False,
        }

    def test_booking_flagged_without_schedule(self):
        """Test the booked flag on staff without a schedule."""
        planner = SlotPlanner()

        slots = planner.available_slots("s1", DAY, BEFORE, [], [_booking("14:00", "15:00")])

        assert len(slots) == 29
        assert [str(slot.time) for slot in slots if slot.is_booked] == ["14:00", "14:30"]

    def test_cancelled_booking_is_ignored(self):
        """Test that a cancelled appointment leaves its slots free."""
        planner = SlotPlanner()

        slots = planner.available_slots(
            "s1", DAY, BEFORE, [], [_booking("14:00", "15:00", status="cancelled")]
        )

        assert not any(slot.is_booked for slot in slots)

    def test_unavailable_day_has_no_slots(self):
        """Test that a window marked unavailable empties the day."""
        planner = SlotPlanner()

        assert planner.available_slots("s1", DAY, BEFORE, [_window("09:00", "20:00", False)], []) == []

    def test_identical_snapshots_give_identical_results(self):
        """Test that planning keeps no state between calls."""
        planner = SlotPlanner()
        windows = [_window("09:00", "13:00")]
        intervals = [_booking("10:00", "10:30")]

        first = planner.available_slots("s1", DAY, BEFORE, windows, intervals)
        second = planner.available_slots("s1", DAY, BEFORE, windows, intervals)

        assert first == second


class TestDayGrid:
    """Tests for SlotPlanner.day_grid."""

    def test_day_grid_keeps_every_slot(self):
        """Test that the overview includes unavailable and past slots."""
        planner = SlotPlanner()
        now = pendulum.datetime(2024, 6, 10, 10, 0)

        grid = planner.day_grid("s1", DAY, now, [_window("09:00", "12:00")], [])

        assert len(grid) == 29
        assert grid[0].is_past and grid[2].is_past
        assert not grid[3].is_past
        assert grid[3].is_within_availability
        assert not grid[6].is_within_availability


class TestContiguousDuration:
    """Tests for max_contiguous_duration and can_fit_duration."""

    def test_stops_at_booked_slot(self):
        """Test that counting ends before the next booked slot."""
        planner = SlotPlanner()
        slots = [_slot("10:00"), _slot("10:30"), _slot("11:00"), _slot("11:30", booked=True)]

        assert planner.max_contiguous_duration("10:00", slots) == 3
        assert planner.can_fit_duration("10:00", slots, 3)
        assert not planner.can_fit_duration("10:00", slots, 4)

    def test_stops_at_gap(self):
        """Test that counting ends at a hole in the slot list."""
        planner = SlotPlanner()
        slots = [_slot("10:00"), _slot("10:30"), _slot("12:00")]

        assert planner.max_contiguous_duration("10:00", slots) == 2

    def test_missing_or_booked_start_is_zero(self):
        """Test the zero result for a start slot that cannot be booked."""
        planner = SlotPlanner()
        slots = [_slot("10:00", booked=True), _slot("10:30")]

        assert planner.max_contiguous_duration("10:00", slots) == 0
        assert planner.max_contiguous_duration("15:00", slots) == 0
        assert not planner.can_fit_duration("15:00", slots, 1)

    def test_runs_to_end_of_list(self):
        """Test counting up to the last slot of the day."""
        planner = SlotPlanner()
        slots = [_slot("22:30"), _slot("23:00"), _slot("23:30")]

        assert planner.max_contiguous_duration("22:30", slots) == 3

    def test_non_positive_duration_never_fits(self):
        """Test that zero slots is not a valid duration."""
        planner = SlotPlanner()

        assert not planner.can_fit_duration("10:00", [_slot("10:00")], 0)
