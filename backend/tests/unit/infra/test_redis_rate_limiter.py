"""
Unit tests for RedisRateLimiter using fakeredis.

The limiter reads time from the injected clock, so windows are driven by a
FixedClock while fakeredis provides the WATCH/MULTI/EXEC semantics.
"""

from __future__ import annotations

import threading

import fakeredis
import pytest
from authcore.infra.redis import RedisRateLimiter


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def limiter(fake_redis, clock):
    return RedisRateLimiter(r=fake_redis, clock=clock)


def test_increment_stores_window_under_namespace(limiter, fake_redis):
    assert limiter.increment("rl:auth:1.2.3.4", 60_000) == 1
    assert limiter.increment("rl:auth:1.2.3.4", 60_000) == 2
    stored = fake_redis.hgetall("ratelimit:rl:auth:1.2.3.4")
    assert stored[b"count"] == b"2"
    assert fake_redis.pttl("ratelimit:rl:auth:1.2.3.4") > 0


def test_limit_and_window_reset(limiter, clock):
    for _ in range(6):
        limiter.increment("k", 60_000)
    denied = limiter.check("k", 5, 60_000)
    assert not denied.allowed
    assert denied.retry_after_ms == 60_000

    clock.advance(seconds=60)
    allowed = limiter.check("k", 5, 60_000)
    assert allowed.allowed and allowed.remaining == 4
    assert limiter.increment("k", 60_000) == 1


def test_check_is_read_only(limiter, fake_redis):
    limiter.check("k", 5, 60_000)
    assert fake_redis.exists("ratelimit:k") == 0


def test_reset_deletes_window(limiter):
    limiter.increment("k", 60_000)
    limiter.reset("k")
    assert limiter.check("k", 1, 60_000).allowed


def test_cleanup_removes_elapsed_windows_only(limiter, clock, fake_redis):
    limiter.increment("short", 5_000)
    limiter.increment("long", 60_000)
    fake_redis.set("unrelated", "1")
    clock.advance(seconds=6)
    assert limiter.cleanup() == 1
    assert fake_redis.exists("ratelimit:long") == 1
    assert fake_redis.exists("unrelated") == 1


def test_concurrent_increments_are_atomic(fake_redis, clock):
    limiter = RedisRateLimiter(r=fake_redis, clock=clock)
    barrier = threading.Barrier(5)

    def hammer():
        barrier.wait()
        for _ in range(20):
            limiter.increment("k", 60_000)

    threads = [threading.Thread(target=hammer) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert fake_redis.hget("ratelimit:k", "count") == b"100"
