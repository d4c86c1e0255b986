"""In-memory sliding-window rate limiter for the Open Cloud proxy routes.

Each client key maps to the timestamps of its requests inside the trailing
window.  Every call records a timestamp, including calls that end up
limited, so a client hammering a limited route stays limited until it backs
off for a full interval.

Stale timestamps are pruned lazily when a key is checked again.  Idle keys
are dropped by ``cleanup()`` and the least recently used key is evicted once
more than ``max_keys`` clients are tracked.

No external dependencies; pure stdlib.
"""

from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from collections.abc import Callable

__all__ = [
    "SlidingWindowRateLimiter",
    "RateLimitInfo",
    "get_default_limiter",
    "reset_default_limiter",
]


class RateLimitInfo:
    """Rate limit decision returned by ``check()``."""

    __slots__ = ("limited", "limit", "remaining", "reset", "reset_after")

    def __init__(
        self, limited: bool, limit: int, remaining: int, reset: float, reset_after: float
    ):
        self.limited = limited
        self.limit = limit
        self.remaining = remaining
        # Wall-clock instant (seconds since epoch) at which this call leaves the window.
        self.reset = reset
        self.reset_after = reset_after

    @property
    def allowed(self) -> bool:
        return not self.limited

    def headers(self) -> dict[str, str]:
        """Return rate-limit response headers (RFC 6585 style)."""
        h: dict[str, str] = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset)),
        }
        if self.limited:
            h["Retry-After"] = str(math.ceil(self.reset_after))
        return h


class SlidingWindowRateLimiter:
    """Sliding-window rate limiter keyed by client identifier (IP address).

    Parameters
    ----------
    interval : float
        Window length in seconds.
    limit : int
        Requests allowed per window; the ``limit + 1``-th call is limited.
    max_keys : int
        Upper bound on tracked clients (LRU eviction).
    clock : callable
        Returns the current time in seconds.  Injectable for tests.
    """

    def __init__(
        self,
        interval: float = 60.0,
        limit: int = 30,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.time,
    ):
        self.interval = interval
        self.limit = limit
        self.max_keys = max_keys
        self._clock = clock
        self._windows: OrderedDict[str, list[float]] = OrderedDict()
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitInfo:
        """Record a request for *key* and report whether it is over the limit."""
        with self._lock:
            now = self._clock()
            window_start = now - self.interval
            timestamps = [t for t in self._windows.get(key, ()) if t > window_start]
            timestamps.append(now)
            self._windows[key] = timestamps
            self._windows.move_to_end(key)
            while len(self._windows) > self.max_keys:
                self._windows.popitem(last=False)

        count = len(timestamps)
        return RateLimitInfo(
            limited=count > self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset=now + self.interval,
            reset_after=self.interval,
        )

    def allow(self, key: str) -> bool:
        """Return True if the request is allowed.  Records the request either way."""
        return self.check(key).allowed

    def cleanup(self) -> int:
        """Remove keys with no timestamps inside the current window. Returns count removed."""
        with self._lock:
            window_start = self._clock() - self.interval
            stale = [k for k, ts in self._windows.items() if not ts or ts[-1] <= window_start]
            for k in stale:
                del self._windows[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._windows)


_default_limiter: SlidingWindowRateLimiter | None = None


def get_default_limiter() -> SlidingWindowRateLimiter:
    """Return the shared limiter for the list routes, initialized from config on first call."""
    global _default_limiter
    if _default_limiter is None:
        from dsmanager.config import get_settings

        settings = get_settings()
        _default_limiter = SlidingWindowRateLimiter(
            interval=settings.rate_limit_interval,
            limit=settings.rate_limit_limit,
            max_keys=settings.rate_limit_max_keys,
        )
    return _default_limiter


def reset_default_limiter() -> None:
    """Forget the shared limiter so the next call rebuilds it from config."""
    global _default_limiter
    _default_limiter = None
