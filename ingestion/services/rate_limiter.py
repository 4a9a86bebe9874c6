"""Outbound request pacing.

``SlidingWindowRateLimiter`` caps the total number of outbound calls of the
process; ``RequestGate`` spaces the successive calls of a single fetcher.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

from ingestion.connectors.base import RateLimitExceeded
from ingestion.services.security_log import SecurityAuditLog, get_security_log

Clock = Callable[[], float]
Sleeper = Callable[[float], None]


class SlidingWindowRateLimiter:
    """Allows ``max_requests`` calls within any ``window_seconds`` span."""

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        *,
        clock: Clock = time.monotonic,
        audit: Optional[SecurityAuditLog] = None,
    ) -> None:
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._audit = audit
        self._requests: Deque[float] = deque()
        self._lock = threading.Lock()

    def _evict(self, now: float) -> None:
        while self._requests and now - self._requests[0] >= self.window_seconds:
            self._requests.popleft()

    def is_limited(self) -> bool:
        with self._lock:
            self._evict(self._clock())
            return len(self._requests) >= self.max_requests

    def remaining(self) -> int:
        with self._lock:
            self._evict(self._clock())
            return self.max_requests - len(self._requests)

    def acquire(self, url: Optional[str] = None) -> None:
        """Record one request or raise ``RateLimitExceeded`` if the window is full."""
        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._requests) >= self.max_requests:
                limited = True
            else:
                self._requests.append(now)
                limited = False
        if limited:
            (self._audit or get_security_log()).log(
                "rate_limit_exceeded", "Too many requests in time window", url
            )
            raise RateLimitExceeded("rate limit exceeded; try again later")


class RequestGate:
    """Per-fetcher minimum spacing between successive requests."""

    def __init__(
        self,
        min_interval_seconds: float = 1.0,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self.min_interval_seconds = max(0.0, float(min_interval_seconds))
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until the interval since the previous call has elapsed; return the delay."""
        with self._lock:
            now = self._clock()
            delay = 0.0
            if self._last is not None:
                delay = max(0.0, self.min_interval_seconds - (now - self._last))
            if delay > 0:
                self._sleep(delay)
            self._last = now + delay
            return delay
