"""Time source port.

Every expiry decision in the service layer reads the current instant from an
injected :class:`Clock`, so tests can pin or advance time explicitly.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of the current UTC instant."""

    def now(self) -> datetime:
        """Return the current timezone-aware UTC datetime."""


class SystemClock:
    """Wall clock backed by :func:`datetime.now`."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """
    Manually driven clock for tests and deterministic replays.

    :param now: Initial instant. Naive values are labelled as UTC.
    """

    def __init__(self, now: datetime | None = None) -> None:
        self._now = _as_utc(now or datetime.now(UTC))
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, now: datetime) -> None:
        """Jump to an absolute instant."""
        with self._lock:
            self._now = _as_utc(now)

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        """
        Move the clock forward.

        :param delta: Explicit offset; combined with any ``timedelta`` kwargs.
        :returns: The new current instant.
        """
        step = (delta or timedelta()) + timedelta(**kwargs)
        with self._lock:
            self._now = self._now + step
            return self._now


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
