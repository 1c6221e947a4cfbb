"""
Rate limiter port and in-memory implementation.

Windows are anchored at the first increment of a key and last ``window_ms``
milliseconds; at ``now >= window_start + window_ms`` the window is over and
the next increment starts a fresh one with no carry-over. ``check`` never
mutates state; ``increment`` returns the authoritative count.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from authcore.services._shared.ports.clock import Clock


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """
    Read-only view of a key's budget.

    :ivar allowed: Whether one more request fits in the window.
    :ivar limit: Configured limit used for the check.
    :ivar remaining: Requests left after admitting this one (0 when denied).
    :ivar retry_after_ms: Milliseconds until the window resets; 0 when allowed.
    :ivar reset_at: Instant the current (or a fresh) window ends.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_ms: int
    reset_at: datetime

    @property
    def retry_after_seconds(self) -> int:
        return math.ceil(self.retry_after_ms / 1000)


class RateLimiter(Protocol):
    """Fixed-window request counter keyed by an arbitrary string."""

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """Evaluate the budget of ``key`` without changing it."""

    def increment(self, key: str, window_ms: int) -> int:
        """Atomically count one request. :returns: Count in the current window."""

    def reset(self, key: str) -> None:
        """Forget the window of ``key``."""

    def cleanup(self) -> int:
        """Drop every elapsed window. :returns: Number of keys removed."""


def evaluate_window(
    *,
    count: int,
    window_end: datetime | None,
    now: datetime,
    limit: int,
    window_ms: int,
) -> RateLimitResult:
    """
    Shared decision rule for all limiter backends.

    :param count: Requests counted in the stored window.
    :param window_end: End of the stored window, ``None`` when absent.
    """
    if window_end is None or now >= window_end:
        return RateLimitResult(
            allowed=limit > 0,
            limit=limit,
            remaining=max(0, limit - 1),
            retry_after_ms=0 if limit > 0 else window_ms,
            reset_at=now + timedelta(milliseconds=window_ms),
        )
    remaining = limit - count
    if remaining <= 0:
        retry_ms = math.ceil((window_end - now) / timedelta(milliseconds=1))
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            retry_after_ms=max(1, retry_ms),
            reset_at=window_end,
        )
    return RateLimitResult(
        allowed=True,
        limit=limit,
        remaining=remaining - 1,
        retry_after_ms=0,
        reset_at=window_end,
    )


@dataclass(slots=True)
class _Window:
    count: int
    started_at: datetime
    ends_at: datetime


class InMemoryRateLimiter(RateLimiter):
    """
    Process-local limiter.

    :param clock: Time source used for window arithmetic.
    """

    def __init__(self, clock: Clock) -> None:
        self.clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        now = self.clock.now()
        with self._lock:
            window = self._windows.get(key)
            count, ends_at = (window.count, window.ends_at) if window else (0, None)
        return evaluate_window(count=count, window_end=ends_at, now=now, limit=limit, window_ms=window_ms)

    def increment(self, key: str, window_ms: int) -> int:
        now = self.clock.now()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.ends_at:
                window = _Window(count=0, started_at=now, ends_at=now + timedelta(milliseconds=window_ms))
                self._windows[key] = window
            window.count += 1
            return window.count

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def cleanup(self) -> int:
        now = self.clock.now()
        with self._lock:
            elapsed = [k for k, w in self._windows.items() if now >= w.ends_at]
            for key in elapsed:
                del self._windows[key]
            return len(elapsed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
