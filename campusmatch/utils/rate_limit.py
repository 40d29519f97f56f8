"""Thread-safe token-bucket rate limiter.

One instance is shared by every caller that must respect a provider limit
(alert sends, analyzer calls), so concurrent sweeps draw from a single
budget instead of each pacing itself.
"""

import threading
import time
from typing import Callable, Optional


class RateLimiter:
    """Token bucket with a refill rate and a burst capacity.

    The bucket starts full. ``acquire()`` blocks until a token is available;
    with ``burst=1`` this enforces a minimum spacing of ``1 / rate`` seconds
    between calls.

    Args:
        rate: Tokens added per second (must be positive)
        burst: Bucket capacity (must be >= 1)
        clock: Monotonic time source, injectable for tests
        sleep: Sleep function, injectable for tests
    """

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rate <= 0:
            raise ValueError(f"rate must be positive, got: {rate}")
        if burst < 1:
            raise ValueError(f"burst must be at least 1, got: {burst}")

        self.rate = float(rate)
        self.burst = int(burst)
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._last_refill = clock()
        self._lock = threading.Lock()

    @classmethod
    def from_interval(
        cls,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Optional["RateLimiter"]:
        """Limiter enforcing a minimum spacing between calls, or None for no spacing."""
        if min_interval_seconds <= 0:
            return None
        return cls(rate=1.0 / min_interval_seconds, burst=1, clock=clock, sleep=sleep)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._last_refill = now

    def try_acquire(self) -> bool:
        """Take a token if one is available without waiting."""
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def acquire(self, timeout: Optional[float] = None) -> float:
        """Block until a token is taken.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely

        Returns:
            Seconds spent waiting

        Raises:
            TimeoutError: If no token became available within timeout
        """
        waited = 0.0
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return waited
                wait = (1.0 - self._tokens) / self.rate

            if timeout is not None and waited + wait > timeout:
                raise TimeoutError(f"Rate limiter token not available within {timeout}s")

            self._sleep(wait)
            waited += wait
