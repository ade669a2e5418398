"""Token bucket that gates live fetches."""

import threading
import time
from typing import Callable


class RateLimiter:
    """Single-token bucket refilled once every ``interval_ms`` milliseconds.

    ``acquire`` never waits: it either takes the token or reports that none
    is available. An interval of 0 disables limiting.
    """

    capacity = 1.0

    def __init__(self, interval_ms: int = 1000, clock: Callable[[], float] = time.monotonic):
        self.interval_ms = interval_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = self.capacity
        self._last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed_ms = (now - self._last_refill) * 1000.0
        self._last_refill = now
        if elapsed_ms > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed_ms / self.interval_ms)

    def acquire(self) -> bool:
        """Take one token. Returns False immediately when the bucket is empty."""
        if self.interval_ms <= 0:
            return True
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    @property
    def tokens(self) -> float:
        with self._lock:
            if self.interval_ms > 0:
                self._refill()
            return self._tokens
