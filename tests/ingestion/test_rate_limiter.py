from __future__ import annotations

import threading

import pytest

from ingestion.connectors.base import ConnectorError, RateLimitExceeded
from ingestion.services.rate_limiter import RequestGate, SlidingWindowRateLimiter
from ingestion.services.security_log import SecurityAuditLog


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_window_blocks_eleventh_request_and_recovers():
    clock = FakeClock()
    audit = SecurityAuditLog()
    limiter = SlidingWindowRateLimiter(10, 60, clock=clock, audit=audit)

    for _ in range(10):
        limiter.acquire("https://arxiv.org/")
        clock.advance(1)
    assert limiter.is_limited() is True
    with pytest.raises(RateLimitExceeded):
        limiter.acquire("https://arxiv.org/")
    assert [e.type for e in audit.events()] == ["rate_limit_exceeded"]

    # the first request (t=1000) leaves the window at t=1060
    clock.now = 1060.0
    assert limiter.remaining() == 1
    limiter.acquire()
    assert limiter.is_limited() is True


def test_rate_limit_is_a_connector_error():
    assert issubclass(RateLimitExceeded, ConnectorError)


def test_limiter_rejects_bad_configuration():
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(0, 60)


def test_limiter_is_thread_safe():
    limiter = SlidingWindowRateLimiter(50, 60, audit=SecurityAuditLog())
    accepted = []
    lock = threading.Lock()

    def worker():
        for _ in range(20):
            try:
                limiter.acquire()
            except RateLimitExceeded:
                continue
            with lock:
                accepted.append(1)

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(accepted) == 50


def test_request_gate_sleeps_remaining_interval():
    clock = FakeClock()
    sleeps = []

    def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.advance(seconds)

    gate = RequestGate(1.0, clock=clock, sleep=fake_sleep)
    assert gate.wait() == 0.0
    clock.advance(0.25)
    assert gate.wait() == pytest.approx(0.75)
    clock.advance(5)
    assert gate.wait() == 0.0
    assert sleeps == [pytest.approx(0.75)]
