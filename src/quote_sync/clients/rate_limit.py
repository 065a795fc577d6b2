"""Minimum-interval rate limiter shared by every caller of one remote service."""

import threading
import time
from typing import Callable, Optional


class RateLimiter:
    """
    Token bucket of one: remembers when the last request went out and sleeps
    off the remaining interval before letting the next one through.
    The lock is held while sleeping, so concurrent workers queue up and the
    per-service call rate stays bounded regardless of worker count.
    """

    def __init__(
        self,
        calls_per_second: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if calls_per_second <= 0:
            raise ValueError("calls_per_second must be positive")
        self.min_interval = 1.0 / calls_per_second
        self._clock = clock
        self._sleep = sleep
        self._last_sent: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until a request may be sent. Returns seconds slept."""
        with self._lock:
            slept = 0.0
            if self._last_sent is not None:
                deficit = self.min_interval - (self._clock() - self._last_sent)
                if deficit > 0:
                    self._sleep(deficit)
                    slept = deficit
            self._last_sent = self._clock()
            return slept
