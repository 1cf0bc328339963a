"""
Discretization of a business day into fixed-length booking slots.
"""

from dataclasses import dataclass
from typing import Iterator

from .exceptions import InvalidTimeFormat
from .models import TimeOfDay


@dataclass(frozen=True)
class TimeGrid:
    """
    Canonical slot grid of a business day.

    ``day_end`` is the start of the last slot, so the default grid runs
    09:00, 09:30, ..., 23:30 (29 slots).
    """
    day_start: TimeOfDay = TimeOfDay(9 * 60)
    day_end: TimeOfDay = TimeOfDay(23 * 60 + 30)
    slot_minutes: int = 30

    def __post_init__(self):
        if self.slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be positive, got {self.slot_minutes}")
        if self.day_start > self.day_end:
            raise ValueError(f"Grid start {self.day_start} must not be after end {self.day_end}")
        if (self.day_end.minutes - self.day_start.minutes) % self.slot_minutes:
            raise ValueError("Grid end must lie on a slot boundary")

    def slots_of_day(self) -> Iterator[TimeOfDay]:
        """Yield every slot start of the day in ascending order. Each call starts over."""
        for minutes in range(
            self.day_start.minutes, self.day_end.minutes + 1, self.slot_minutes
        ):
            yield TimeOfDay(minutes)

    def __iter__(self) -> Iterator[TimeOfDay]:
        return self.slots_of_day()

    @property
    def slot_count(self) -> int:
        return (self.day_end.minutes - self.day_start.minutes) // self.slot_minutes + 1

    def contains(self, time: "str | TimeOfDay") -> bool:
        """Check if a time is one of the grid's slot starts."""
        minutes = to_minutes(time)
        return (
            self.day_start.minutes <= minutes <= self.day_end.minutes
            and (minutes - self.day_start.minutes) % self.slot_minutes == 0
        )

    def slot_end(self, slot: "str | TimeOfDay") -> TimeOfDay:
        return from_minutes(to_minutes(slot) + self.slot_minutes)

    def are_consecutive(self, a: "str | TimeOfDay", b: "str | TimeOfDay") -> bool:
        """True iff ``b`` starts exactly one slot after ``a``."""
        return to_minutes(b) - to_minutes(a) == self.slot_minutes


DEFAULT_GRID = TimeGrid()


def to_minutes(time: "str | TimeOfDay") -> int:
    """
    Convert a time to minutes since midnight.

    Raises:
        InvalidTimeFormat: If a string is not H:MM or HH:MM
    """
    return TimeOfDay.parse(time).minutes


def from_minutes(minutes: int) -> TimeOfDay:
    """
    Convert minutes since midnight to a time of day.

    Raises:
        InvalidTimeFormat: If minutes fall outside 00:00-24:00
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidTimeFormat(f"Expected whole minutes, got {minutes!r}")
    return TimeOfDay(minutes)


def are_consecutive(a: "str | TimeOfDay", b: "str | TimeOfDay") -> bool:
    """True iff ``b`` is exactly 30 minutes after ``a`` on the default grid."""
    return DEFAULT_GRID.are_consecutive(a, b)


def format_duration(slots: int, slot_minutes: int = 30) -> str:
    """
    Format a slot count as a human readable duration.

    Example: 1 -> "30 minutes", 3 -> "1 hour 30 minutes", 4 -> "2 hours"
    """
    minutes = slots * slot_minutes
    if minutes < 60:
        return f"{minutes} minutes"

    hours, remaining = divmod(minutes, 60)
    label = f"{hours} hour{'s' if hours > 1 else ''}"
    if remaining == 0:
        return label
    return f"{label} {remaining} minutes"
