"""
Clock Sources

The ledger never reads the wall clock itself; it asks an injected clock for
the current time in whole seconds.
"""

import time
from typing import Protocol


class Clock(Protocol):
    """Source of the current time in whole seconds"""

    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock time in whole UNIX seconds"""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Explicitly driven clock for simulations and tests"""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before zero")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new time"""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError("Clock cannot move backwards")
        self._now = timestamp
