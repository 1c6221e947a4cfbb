# comments in English; reST docstrings
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import cast

import redis  # type: ignore[import-untyped]

from authcore.services._shared.ports import Clock, RateLimiter, RateLimitResult, SystemClock
from authcore.services._shared.ports.rate_limiter import evaluate_window


@dataclass(slots=True)
class RedisRateLimiter(RateLimiter):
    """
    Redis-backed fixed-window rate limiter.

    Each key is a hash ``{count, ends_at_ms}`` under ``<namespace><key>``.
    Increments use WATCH/MULTI/EXEC so concurrent workers never lose a count;
    a relative PEXPIRE lets Redis drop windows on its own, while ``cleanup``
    removes windows that the injected clock considers elapsed.

    :param r: A Redis client (already connected).
    :param clock: Time source for window arithmetic.
    :param namespace: Prefix isolating limiter keys from other data.
    """

    r: redis.Redis
    clock: Clock = field(default_factory=SystemClock)
    namespace: str = "ratelimit:"

    # -------------------- helpers --------------------

    def _k(self, key: str) -> str:
        return f"{self.namespace}{key}"

    @staticmethod
    def _to_ms(dt: datetime) -> int:
        return int(dt.timestamp() * 1000)

    @staticmethod
    def _from_ms(ms: int) -> datetime:
        return datetime.fromtimestamp(ms / 1000, tz=UTC)

    @staticmethod
    def _decode(h: dict[bytes, bytes]) -> tuple[int, int] | None:
        if not h:
            return None

        def _b(s: bytes | None, default: str = "0") -> str:
            return s.decode() if s is not None else default

        return int(_b(h.get(b"count"))), int(_b(h.get(b"ends_at_ms")))

    # -------------------- API ------------------------

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        now = self.clock.now()
        state = self._decode(cast(dict[bytes, bytes], self.r.hgetall(self._k(key))))
        count, window_end = (state[0], self._from_ms(state[1])) if state else (0, None)
        return evaluate_window(count=count, window_end=window_end, now=now, limit=limit, window_ms=window_ms)

    def increment(self, key: str, window_ms: int) -> int:
        k = self._k(key)
        # Retry loop for optimistic locking in case of concurrent increments
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(k)
                    now_ms = self._to_ms(self.clock.now())
                    state = self._decode(cast(dict[bytes, bytes], p.hgetall(k)))
                    if state is None or now_ms >= state[1]:
                        count, ends_at_ms = 0, now_ms + window_ms
                    else:
                        count, ends_at_ms = state
                    count += 1

                    p.multi()
                    p.hset(k, mapping={"count": str(count), "ends_at_ms": str(ends_at_ms)})
                    p.pexpire(k, max(1, ends_at_ms - now_ms))
                    p.execute()
                return count
            except redis.WatchError:
                continue

    def reset(self, key: str) -> None:
        self.r.delete(self._k(key))

    def cleanup(self) -> int:
        now_ms = self._to_ms(self.clock.now())
        stale: list[bytes] = []
        for k in self.r.scan_iter(match=f"{self.namespace}*"):
            state = self._decode(cast(dict[bytes, bytes], self.r.hgetall(k)))
            if state is None or now_ms >= state[1]:
                stale.append(k)
        if not stale:
            return 0
        return cast(int, self.r.delete(*stale))
