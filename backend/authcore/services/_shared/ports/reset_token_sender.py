"""Delivery port for one-time tokens (password reset, email verification)."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResetMessage:
    """
    A one-time token addressed to its owner.

    :ivar kind: ``password_reset`` or ``email_verification``.
    """

    user_id: str
    email: str
    token: str
    expires_at: datetime
    kind: str = "password_reset"


class ResetTokenSender(Protocol):
    """Hand a freshly issued token to its owner (email, SMS ...)."""

    def send(self, message: ResetMessage) -> None:
        """Deliver ``message``; must not log the raw token."""


class InMemoryResetTokenSender(ResetTokenSender):
    """Outbox that keeps messages in memory, for tests and development."""

    def __init__(self) -> None:
        self.outbox: list[ResetMessage] = []
        self._lock = threading.Lock()

    def send(self, message: ResetMessage) -> None:
        with self._lock:
            self.outbox.append(message)

    def last_for(self, email: str, kind: str = "password_reset") -> ResetMessage | None:
        with self._lock:
            return next(
                (m for m in reversed(self.outbox) if m.email == email and m.kind == kind), None
            )


class LoggingResetTokenSender(ResetTokenSender):
    """Placeholder transport: records the dispatch without the token value."""

    def send(self, message: ResetMessage) -> None:
        event = f"{message.kind}.dispatched"
        log.info(event, extra={"user_id": message.user_id, "event": event})
