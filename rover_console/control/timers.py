"""
Polled interval timers.

The console loop polls expired() on its own thread, so timer callbacks
never run concurrently with serial handling.
"""

import time
from typing import Callable, Optional


class IntervalTimer:
    """
    Periodic timer driven by polling.

    start() on an active timer restarts the interval rather than adding a
    second schedule.
    """

    def __init__(self, interval_s: float, clock: Callable[[], float] = time.monotonic):
        if interval_s <= 0:
            raise ValueError(f"interval must be positive, got {interval_s}")
        self.interval_s = interval_s
        self._clock = clock
        self._deadline: Optional[float] = None

    def start(self, interval_s: Optional[float] = None):
        if interval_s is not None:
            self.interval_s = interval_s
        self._deadline = self._clock() + self.interval_s

    def stop(self):
        self._deadline = None

    @property
    def is_active(self) -> bool:
        return self._deadline is not None

    def expired(self) -> bool:
        """
        True once per elapsed interval; re-arms from the current time.

        A loop that falls behind gets a single expiry, not a burst.
        """
        if self._deadline is None:
            return False
        now = self._clock()
        if now < self._deadline:
            return False
        self._deadline = now + self.interval_s
        return True

    @property
    def remaining_s(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())
