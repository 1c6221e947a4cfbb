"""Unit tests for the in-memory fixed-window rate limiter."""

from __future__ import annotations

import threading
from datetime import timedelta

from authcore.services._shared.ports import InMemoryRateLimiter


def test_check_does_not_mutate(rate_limiter):
    for _ in range(3):
        result = rate_limiter.check("k", 5, 60_000)
        assert result.allowed and result.remaining == 4
    assert len(rate_limiter) == 0


def test_six_increments_exhaust_a_limit_of_five(rate_limiter, clock):
    for _ in range(6):
        rate_limiter.increment("k", 60_000)
    denied = rate_limiter.check("k", 5, 60_000)
    assert denied.allowed is False
    assert denied.retry_after_ms > 0
    assert denied.remaining == 0

    clock.advance(milliseconds=60_000)
    fresh = rate_limiter.check("k", 5, 60_000)
    assert fresh.allowed is True
    assert fresh.remaining == 4


def test_window_is_anchored_at_first_increment(rate_limiter, clock):
    start = clock.now()
    rate_limiter.increment("k", 1_000)
    clock.advance(milliseconds=999)
    assert rate_limiter.increment("k", 1_000) == 2
    result = rate_limiter.check("k", 5, 1_000)
    assert result.reset_at == start + timedelta(milliseconds=1_000)

    clock.advance(milliseconds=1)
    assert rate_limiter.increment("k", 1_000) == 1


def test_retry_after_counts_down_to_window_end(rate_limiter, clock):
    rate_limiter.increment("k", 10_000)
    clock.advance(milliseconds=2_500)
    result = rate_limiter.check("k", 1, 10_000)
    assert result.retry_after_ms == 7_500
    assert result.retry_after_seconds == 8


def test_keys_are_independent(rate_limiter):
    for _ in range(5):
        rate_limiter.increment("a", 60_000)
    assert rate_limiter.check("a", 5, 60_000).allowed is False
    assert rate_limiter.check("b", 5, 60_000).allowed is True


def test_reset_and_cleanup(rate_limiter, clock):
    rate_limiter.increment("short", 1_000)
    rate_limiter.increment("long", 60_000)
    rate_limiter.increment("gone", 60_000)
    rate_limiter.reset("gone")
    clock.advance(seconds=1)
    assert rate_limiter.cleanup() == 1
    assert len(rate_limiter) == 1


def test_concurrent_increments_are_not_lost(clock):
    limiter = InMemoryRateLimiter(clock)
    barrier = threading.Barrier(10)

    def hammer():
        barrier.wait()
        for _ in range(100):
            limiter.increment("k", 60_000)

    threads = [threading.Thread(target=hammer) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert limiter.check("k", 2_000, 60_000).remaining == 2_000 - 1_000 - 1
