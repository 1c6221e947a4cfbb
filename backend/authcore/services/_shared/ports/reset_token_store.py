"""Password-reset token store port and in-memory implementation."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import uuid4

from authcore.services._shared.tokens import PasswordResetToken, PasswordResetTokenStatus


class ResetTokenStore(Protocol):
    """
    Stateful store for single-use reset tokens.

    ``mark_used`` is a compare-and-swap on ACTIVE: of two concurrent
    confirmations only one may succeed.
    """

    def new_token_id(self) -> str:
        """Generate a new token identifier."""
        return uuid4().hex

    def save(self, token: PasswordResetToken) -> None:
        """Persist a new token (digest only)."""

    def find_by_hash(self, token_hash: str) -> PasswordResetToken | None:
        """Look up a token by the digest of its signed value."""

    def find_by_id(self, token_id: str) -> PasswordResetToken | None:
        """Look up a token by id."""

    def mark_used(self, token_id: str, at: datetime) -> bool:
        """ACTIVE → USED. :returns: True only if this call made the transition."""

    def revoke_all_by_user(self, user_id: str, at: datetime) -> int:
        """
        Revoke every ACTIVE reset token of a user.

        :returns: Number of tokens revoked.
        """

    def list_by_user(self, user_id: str) -> list[PasswordResetToken]:
        """Return all tokens of a user ordered by issue time."""

    def delete_expired(self, before: datetime) -> int:
        """Delete tokens with ``expires_at <= before``. :returns: rows removed."""


class InMemoryResetTokenStore(ResetTokenStore):
    """Thread-safe in-memory reset token store."""

    def __init__(self) -> None:
        self._by_id: dict[str, PasswordResetToken] = {}
        self._by_hash: dict[str, str] = {}
        self._seq = 0
        self._lock = threading.Lock()

    def new_token_id(self) -> str:
        with self._lock:
            self._seq += 1
            return f"prt-{self._seq}"

    def save(self, token: PasswordResetToken) -> None:
        with self._lock:
            if token.token_id in self._by_id:
                raise ValueError(f"duplicate reset token id: {token.token_id}")
            stored = token.without_value()
            self._by_id[stored.token_id] = stored
            self._by_hash[stored.token_hash] = stored.token_id

    def find_by_hash(self, token_hash: str) -> PasswordResetToken | None:
        with self._lock:
            token_id = self._by_hash.get(token_hash)
            return self._by_id.get(token_id) if token_id else None

    def find_by_id(self, token_id: str) -> PasswordResetToken | None:
        with self._lock:
            return self._by_id.get(token_id)

    def mark_used(self, token_id: str, at: datetime) -> bool:
        with self._lock:
            current = self._by_id.get(token_id)
            if current is None or current.status is not PasswordResetTokenStatus.ACTIVE:
                return False
            self._by_id[token_id] = replace(current, status=PasswordResetTokenStatus.USED, used_at=at)
            return True

    def revoke_all_by_user(self, user_id: str, at: datetime) -> int:
        with self._lock:
            count = 0
            for token_id, token in list(self._by_id.items()):
                if token.user_id == user_id and token.status is PasswordResetTokenStatus.ACTIVE:
                    self._by_id[token_id] = token.mark_revoked(at)
                    count += 1
            return count

    def list_by_user(self, user_id: str) -> list[PasswordResetToken]:
        with self._lock:
            owned = [t for t in self._by_id.values() if t.user_id == user_id]
        return sorted(owned, key=lambda t: (t.issued_at, t.token_id))

    def delete_expired(self, before: datetime) -> int:
        with self._lock:
            doomed = [t for t in self._by_id.values() if t.expires_at <= before]
            for token in doomed:
                del self._by_id[token.token_id]
                self._by_hash.pop(token.token_hash, None)
            return len(doomed)
