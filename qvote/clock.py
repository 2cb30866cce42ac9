"""Clock collaborators used for session time-window checks."""

import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        """Current time as whole Unix seconds."""
        ...


class SystemClock:
    """Wall clock, truncated to whole seconds.

    Session windows are stored as wall-clock Unix timestamps, so this reads
    ``time.time()`` rather than a monotonic counter. Readings never go
    backwards: if the system clock is stepped back, the last value handed
    out is repeated until wall time catches up.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """A clock that only moves when told to. Used by tests and simulations."""

    def __init__(self, start: int = 1_700_000_000):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError("Cannot move a clock backwards")
        self._now = timestamp
