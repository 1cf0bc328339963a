"""
Detection of grid slots already occupied by existing appointments.
"""

from typing import Dict, Iterable, List, Optional

from pendulum import Date

from .models import EXCLUDED_STATUSES, BookedInterval, TimeOfDay, parse_date
from .time_grid import DEFAULT_GRID, TimeGrid


class BookingConflictDetector:
    """
    Answers "is staff X already booked at slot T on date D?".

    A slot occupies [T, T + slot length). It is blocked when that range
    overlaps any active booking of the staff member. Bookings whose status is
    excluded (cancelled, no-show) are ignored even if the store returned them.
    """

    def __init__(
        self,
        grid: TimeGrid = DEFAULT_GRID,
        excluded_statuses: Iterable[str] = EXCLUDED_STATUSES
    ):
        self.grid = grid
        self.excluded_statuses = frozenset(excluded_statuses)

    def active_intervals(
        self,
        staff_id: str,
        intervals: Iterable[BookedInterval],
        date: Optional[Date] = None
    ) -> List[BookedInterval]:
        """Select the occupying bookings of one staff member, optionally for one date."""
        target = parse_date(date) if date is not None else None
        return [
            interval for interval in intervals
            if interval.staff_id == staff_id
            and interval.is_active(self.excluded_statuses)
            and (target is None or interval.date == target)
        ]

    def is_blocked(
        self,
        slot: TimeOfDay,
        staff_id: str,
        intervals: Iterable[BookedInterval],
        date: Optional[Date] = None
    ) -> bool:
        start = slot.minutes
        end = start + self.grid.slot_minutes
        return any(
            interval.overlaps(start, end)
            for interval in self.active_intervals(staff_id, intervals, date)
        )

    def blocked_slots(
        self,
        staff_id: str,
        intervals: Iterable[BookedInterval],
        date: Optional[Date] = None
    ) -> Dict[str, bool]:
        """
        Map every grid slot of the day to its blocked flag.

        Returns:
            Dictionary keyed by slot string ("HH:MM"), in grid order
        """
        own_intervals = self.active_intervals(staff_id, intervals, date)
        blocked: Dict[str, bool] = {}

        for slot in self.grid.slots_of_day():
            start = slot.minutes
            end = start + self.grid.slot_minutes
            blocked[str(slot)] = any(
                interval.overlaps(start, end) for interval in own_intervals
            )

        return blocked

    def blocked_map(
        self,
        intervals: Iterable[BookedInterval],
        date: Optional[Date] = None
    ) -> Dict[str, Dict[str, bool]]:
        """Blocked-slot maps for every staff member that has a booking."""
        interval_list = list(intervals)
        staff_ids = sorted({interval.staff_id for interval in interval_list})
        return {
            staff_id: self.blocked_slots(staff_id, interval_list, date)
            for staff_id in staff_ids
        }
