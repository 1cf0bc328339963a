"""
Core business logic for planning bookable slots.

Pure domain logic: the planner works on explicit availability and booking
snapshots and keeps no state between calls, so identical snapshots always
yield identical slot lists.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from pendulum import Date

from .availability import AvailabilityResolver
from .conflicts import BookingConflictDetector
from .models import AvailabilityWindow, BookedInterval, SlotState, TimeOfDay, parse_date
from .time_grid import DEFAULT_GRID, TimeGrid, to_minutes

logger = logging.getLogger(__name__)


class SlotPlanner:
    """
    Combines staff availability and existing bookings into the slot view
    used by the booking UI.

    Algorithm:
    1. Refuse dates before today
    2. On today, drop slots at or before the current wall-clock minute
    3. Annotate each grid slot with availability and booking state
    4. Keep slots inside the staff member's availability (booked ones flagged)
    """

    def __init__(
        self,
        grid: TimeGrid = DEFAULT_GRID,
        resolver: Optional[AvailabilityResolver] = None,
        detector: Optional[BookingConflictDetector] = None
    ):
        self.grid = grid
        self.resolver = resolver or AvailabilityResolver(grid)
        self.detector = detector or BookingConflictDetector(grid)

    def available_slots(
        self,
        staff_id: str,
        date: "str | Date",
        now: datetime,
        windows: Iterable[AvailabilityWindow],
        intervals: Iterable[BookedInterval]
    ) -> List[SlotState]:
        """
        Compute the slots a staff member can be booked into on a date.

        Args:
            staff_id: Staff member identifier
            date: Calendar date of the booking
            now: Current local wall-clock datetime
            windows: Availability snapshot for the date
            intervals: Booking snapshot for the date

        Returns:
            Chronologically ordered SlotState list. Empty for past dates.
        """
        target = parse_date(date)
        today = parse_date(now)

        if target < today:
            return []

        cutoff = self._cutoff(target, today, now)
        window_list = list(windows)
        has_schedule = self.resolver.has_schedule(staff_id, target, window_list)
        blocked = self.detector.blocked_slots(staff_id, intervals, target)

        slots: List[SlotState] = []

        for slot in self.grid.slots_of_day():
            if cutoff is not None and slot.minutes <= cutoff:
                continue

            is_booked = blocked[str(slot)]

            # Staff without a schedule for the day: every slot, booked flag only
            if not has_schedule:
                slots.append(SlotState(slot, is_within_availability=True, is_booked=is_booked))
                continue

            if self.resolver.is_available(staff_id, target, slot, window_list):
                slots.append(SlotState(slot, is_within_availability=True, is_booked=is_booked))

        logger.debug(
            "Planned %d slots for %s on %s (schedule=%s)",
            len(slots), staff_id, target, has_schedule
        )
        return slots

    def day_grid(
        self,
        staff_id: str,
        date: "str | Date",
        now: datetime,
        windows: Iterable[AvailabilityWindow],
        intervals: Iterable[BookedInterval]
    ) -> List[SlotState]:
        """
        Annotate every grid slot of the day, including unavailable and past ones.

        Used for the staff overview, where unavailable slots are shown greyed
        out instead of hidden.
        """
        target = parse_date(date)
        today = parse_date(now)
        cutoff = self._cutoff(target, today, now)
        window_list = list(windows)
        blocked = self.detector.blocked_slots(staff_id, intervals, target)

        return [
            SlotState(
                slot,
                is_within_availability=self.resolver.is_available(
                    staff_id, target, slot, window_list
                ),
                is_booked=blocked[str(slot)],
                is_past=target < today or (cutoff is not None and slot.minutes <= cutoff),
            )
            for slot in self.grid.slots_of_day()
        ]

    def max_contiguous_duration(
        self,
        start_slot: "str | TimeOfDay",
        slots: Sequence[SlotState]
    ) -> int:
        """
        Count the consecutive free slots reachable from ``start_slot``.

        Counting stops at the first booked slot, the first gap in the grid, or
        the end of the list.

        Returns:
            Number of slots including the start, 0 if the start slot is not
            offered or already booked
        """
        start_index = self._index_of(start_slot, slots)
        if start_index is None or slots[start_index].is_booked:
            return 0

        count = 1
        for index in range(start_index + 1, len(slots)):
            previous, current = slots[index - 1], slots[index]
            if current.is_booked or not self.grid.are_consecutive(previous.time, current.time):
                break
            count += 1

        return count

    def can_fit_duration(
        self,
        start_slot: "str | TimeOfDay",
        slots: Sequence[SlotState],
        duration_slots: int
    ) -> bool:
        """Check if ``duration_slots`` consecutive free slots start at ``start_slot``."""
        if duration_slots <= 0:
            return False

        start_index = self._index_of(start_slot, slots)
        if start_index is None:
            return False

        if duration_slots > self.max_contiguous_duration(start_slot, slots):
            return False

        span = slots[start_index:start_index + duration_slots]
        return len(span) == duration_slots and not any(slot.is_booked for slot in span)

    @staticmethod
    def _cutoff(target: Date, today: Date, now: datetime) -> Optional[int]:
        """Current wall-clock minute when planning for today, else None."""
        if target != today:
            return None
        return now.hour * 60 + now.minute

    @staticmethod
    def _index_of(start_slot: "str | TimeOfDay", slots: Sequence[SlotState]) -> Optional[int]:
        minutes = to_minutes(start_slot)
        for index, slot in enumerate(slots):
            if slot.time.minutes == minutes:
                return index
        return None
