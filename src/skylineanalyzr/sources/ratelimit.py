"""Token bucket rate limiter shared by the source clients."""

import logging
import math
import threading
from typing import Callable

from ..storage.cache import monotonic_ms

logger = logging.getLogger(__name__)


class TokenBucket:
    """Continuous-refill token bucket.

    The bucket starts full and regains ``capacity`` tokens per
    ``refill_period_ms``, never holding more than ``capacity``. Token
    deduction happens under a lock so concurrent callers cannot both spend
    the last token.

    Example:
        bucket = TokenBucket(capacity=120, refill_period_ms=60_000)
        if bucket.can_proceed():
            bucket.record_call()
        else:
            print(f"retry in {bucket.wait_time_ms()} ms")
    """

    def __init__(
        self,
        capacity: int,
        refill_period_ms: float,
        clock: Callable[[], float] = monotonic_ms,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if refill_period_ms <= 0:
            raise ValueError("refill_period_ms must be positive")
        self.capacity = capacity
        self.refill_period_ms = refill_period_ms
        self._clock = clock
        self._tokens = float(capacity)
        self._last_refill = clock()
        self._lock = threading.Lock()

    @property
    def tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.capacity / self.refill_period_ms)
        self._last_refill = now

    def can_proceed(self) -> bool:
        with self._lock:
            self._refill()
            return self._tokens >= 1

    def record_call(self) -> bool:
        """Spend one token if available.

        Returns:
            True if a token was spent, False (no-op) when the bucket is empty
        """
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    def wait_time_ms(self) -> int:
        """Milliseconds until one token is available (0 if one is now)."""
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                return 0
            return math.ceil((1 - self._tokens) * self.refill_period_ms / self.capacity)
