"""In-memory token-bucket rate limiter for ``POST /oauth``.

Each client address may start ``requests`` logins per ``window`` seconds;
spent attempts trickle back evenly over the window. Disabled unless
``STELLOAUTH_RATE_LIMIT_REQUESTS`` is set.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable

from stelloauth.config import Settings

__all__ = [
    "RateLimiter",
    "RateLimitInfo",
    "limiter_from_settings",
]


class _Bucket:
    __slots__ = ("tokens", "updated")

    def __init__(self, tokens: float, now: float):
        self.tokens = tokens
        self.updated = now


class RateLimitInfo:
    """Outcome of one ``check()``."""

    __slots__ = ("allowed", "limit", "remaining", "retry_after")

    def __init__(self, allowed: bool, limit: int, remaining: int, retry_after: float):
        self.allowed = allowed
        self.limit = limit
        self.remaining = remaining
        self.retry_after = retry_after

    def headers(self) -> dict[str, str]:
        """Response headers for a rejected (or accepted) request."""
        h = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
        }
        if not self.allowed:
            h["Retry-After"] = str(max(1, math.ceil(self.retry_after)))
        return h


class RateLimiter:
    """Token bucket per client key.

    Parameters
    ----------
    requests : int
        Burst size: attempts available to a fresh client.
    window : float
        Seconds for a drained bucket to refill completely.
    clock : callable, optional
        Monotonic time source; injectable for tests.
    """

    # Refilled buckets are forgotten every PRUNE_EVERY checks
    PRUNE_EVERY = 256

    def __init__(
        self,
        requests: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if requests <= 0 or window <= 0:
            raise ValueError("requests and window must be positive")
        self.requests = requests
        self.window = window
        self.rate = requests / window
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._checks = 0

    def check(self, key: str) -> RateLimitInfo:
        """Spend one attempt for ``key`` if one is available."""
        now = self._clock()
        self._checks += 1
        if self._checks % self.PRUNE_EVERY == 0:
            self.prune(now)

        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = _Bucket(float(self.requests), now)
        else:
            bucket.tokens = min(
                float(self.requests), bucket.tokens + (now - bucket.updated) * self.rate
            )
            bucket.updated = now

        if bucket.tokens >= 1.0:
            bucket.tokens -= 1.0
            return RateLimitInfo(True, self.requests, int(bucket.tokens), 0.0)
        return RateLimitInfo(False, self.requests, 0, (1.0 - bucket.tokens) / self.rate)

    def prune(self, now: float | None = None) -> int:
        """Drop buckets that have refilled completely. Returns count removed."""
        now = self._clock() if now is None else now
        stale = [k for k, b in self._buckets.items() if now - b.updated >= self.window]
        for k in stale:
            del self._buckets[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._buckets)


def limiter_from_settings(settings: Settings) -> RateLimiter | None:
    """Limiter for ``POST /oauth``, or None when rate limiting is off."""
    if settings.rate_limit_requests <= 0:
        return None
    return RateLimiter(settings.rate_limit_requests, settings.rate_limit_window)
