"""
Resolution of staff availability windows into open grid slots.
"""

import logging
from typing import Iterable, List

from pendulum import Date

from .models import AvailabilityWindow, TimeOfDay, parse_date
from .time_grid import DEFAULT_GRID, TimeGrid

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """
    Answers "is staff X available at slot T on date D?".

    A staff member without any window recorded for the date is treated as
    available for the whole grid. Once a window exists for the date, only
    slots covered by an ``is_available`` window are open.
    """

    def __init__(self, grid: TimeGrid = DEFAULT_GRID):
        self.grid = grid

    @staticmethod
    def windows_for(
        staff_id: str,
        date: Date,
        windows: Iterable[AvailabilityWindow]
    ) -> List[AvailabilityWindow]:
        """Select the windows recorded for one staff member on one date."""
        target = parse_date(date)
        return [
            window for window in windows
            if window.staff_id == staff_id and window.date == target
        ]

    def has_schedule(
        self,
        staff_id: str,
        date: Date,
        windows: Iterable[AvailabilityWindow]
    ) -> bool:
        """True if the staff member declared any window for the date."""
        return bool(self.windows_for(staff_id, date, windows))

    def is_available(
        self,
        staff_id: str,
        date: Date,
        slot: TimeOfDay,
        windows: Iterable[AvailabilityWindow]
    ) -> bool:
        """True if the staff member can be booked at the slot on the date."""
        own_windows = self.windows_for(staff_id, date, windows)
        if not own_windows:
            return True

        return any(
            window.is_available and window.covers(slot)
            for window in own_windows
        )

    def open_slots(
        self,
        staff_id: str,
        date: Date,
        windows: Iterable[AvailabilityWindow]
    ) -> List[TimeOfDay]:
        """
        List every grid slot the staff member is available for.

        Args:
            staff_id: Staff member identifier
            date: Calendar date
            windows: Availability snapshot (may contain other staff or dates)

        Returns:
            Slot starts in ascending order
        """
        own_windows = self.windows_for(staff_id, date, windows)
        if not own_windows:
            logger.debug("No availability recorded for %s on %s, using full grid", staff_id, date)
            return list(self.grid.slots_of_day())

        return [
            slot for slot in self.grid.slots_of_day()
            if any(window.is_available and window.covers(slot) for window in own_windows)
        ]
