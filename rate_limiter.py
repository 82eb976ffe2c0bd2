"""
Steady rate limiter shared by every request a client makes.
"""

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_RATE = 10  # req / sec


class RateLimiter:
    """
    Hands out one token every ``1 / rate`` seconds.

    Tokens are evenly spaced rather than bursty: a caller arriving less than
    one interval after the previous grant sleeps until the interval has
    elapsed. Acquisitions are serialized with a lock, so a single limiter can
    be shared between threads.
    """

    def __init__(
        self,
        rate: float = DEFAULT_RATE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            rate: Tokens per second. Must be positive.
            clock: Monotonic clock, injectable for tests.
            sleep: Blocking sleep, injectable for tests.
        """
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        self.rate = rate
        self.interval = 1.0 / rate
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Block until a token is available and return the time it was granted."""
        with self._lock:
            now = self._clock()
            if self._last is not None:
                ready = self._last + self.interval
                if ready > now:
                    wait = ready - now
                    logger.debug("Rate limited, waiting %.3fs", wait)
                    self._sleep(wait)
                    now = ready
            self._last = now
            return now
