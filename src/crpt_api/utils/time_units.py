"""
Time units for describing the length of a throttling window.
"""

from enum import Enum
from typing import Union


class TimeUnit(Enum):
    NANOSECONDS = 1e-9
    MICROSECONDS = 1e-6
    MILLISECONDS = 1e-3
    SECONDS = 1.0
    MINUTES = 60.0
    HOURS = 3600.0
    DAYS = 86400.0

    def to_seconds(self, duration: float) -> float:
        """Convert ``duration`` expressed in this unit to seconds."""
        return duration * self.value

    @classmethod
    def parse(cls, unit: Union["TimeUnit", str]) -> "TimeUnit":
        """
        Accept a TimeUnit member or its name in any case ("seconds", "MINUTES").

        Raises:
            ValueError: If the name does not match any unit
        """
        if isinstance(unit, cls):
            return unit
        if isinstance(unit, str):
            try:
                return cls[unit.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown time unit: {unit!r}")
