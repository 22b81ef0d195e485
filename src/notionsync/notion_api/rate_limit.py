"""Token-bucket pacing for remote calls.

The remote API allows roughly three requests per second.  Pacing is done
client-side with a classic token bucket: tokens are replenished at a fixed
*rate* (tokens per second) up to a *burst* ceiling, and a caller that finds
the bucket empty sleeps until a token is due.

:meth:`TokenBucket.from_interval` builds a bucket with a burst of one, which
turns it into a strict minimum-interval throttle: the first call goes out
immediately and every later call waits until *interval* seconds have passed
since the previous one.
"""

from __future__ import annotations

import threading
import time


class TokenBucket:
    """Thread-safe token bucket for synchronous rate limiting.

    Parameters
    ----------
    rate_rps:
        Sustained token-refill rate in tokens per second.
    burst:
        Maximum number of tokens the bucket can hold (burst ceiling).
    """

    __slots__ = ("_lock", "burst", "last_refill", "rate", "tokens")

    def __init__(self, rate_rps: float, burst: int = 1) -> None:
        if rate_rps <= 0:
            raise ValueError(f"rate_rps must be > 0, got {rate_rps}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")

        self.rate: float = rate_rps
        self.burst: int = burst
        self.tokens: float = float(burst)
        self.last_refill: float = time.monotonic()
        self._lock = threading.Lock()

    @classmethod
    def from_interval(cls, interval: float) -> TokenBucket:
        """Bucket that spaces calls at least *interval* seconds apart."""
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        return cls(rate_rps=1.0 / interval, burst=1)

    def acquire(self, tokens: int = 1) -> float:
        """Acquire *tokens* from the bucket, blocking if necessary.

        Returns the number of seconds the caller had to wait (``0.0`` if
        tokens were immediately available).
        """
        with self._lock:
            now = time.monotonic()
            elapsed = max(0.0, now - self.last_refill)
            self.tokens = min(self.burst, self.tokens + elapsed * self.rate)
            self.last_refill = now

            if self.tokens >= tokens:
                self.tokens -= tokens
                return 0.0

            deficit = tokens - self.tokens
            wait = deficit / self.rate
            self.tokens = 0.0
            # The deficit is paid by sleeping; refill resumes after it.
            self.last_refill = now + wait

        time.sleep(wait)
        return wait
