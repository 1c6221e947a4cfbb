"""
Refresh-token store port and its in-memory reference implementation.

Every status transition is a conditional update: it only applies when the
stored status is still the expected one and reports whether it did. Callers
must never read-then-write a status.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import uuid4

from authcore.services._shared.tokens import RefreshToken, RefreshTokenStatus


class RefreshTokenStore(Protocol):
    """
    Stateful store for refresh tokens.

    All write operations MUST be atomic; ``rotate`` MUST consume the parent
    and insert the child in one step.
    """

    def new_token_id(self) -> str:
        """Generate a new token identifier."""
        return uuid4().hex

    def save(self, token: RefreshToken) -> None:
        """Persist a new token (its raw value is never stored)."""

    def find_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Look up a token by the digest of its signed value."""

    def find_by_id(self, token_id: str) -> RefreshToken | None:
        """Look up a token by id."""

    def mark_rotated(self, token_id: str) -> bool:
        """ACTIVE → ROTATED. :returns: True only if this call made the transition."""

    def rotate(self, parent_id: str, child: RefreshToken) -> bool:
        """
        Atomically mark ``parent_id`` ROTATED and save ``child``.

        :returns: False, with nothing written, when the parent was not ACTIVE.
        """

    def mark_revoked(self, token_id: str) -> bool:
        """ACTIVE → REVOKED. :returns: True only if this call made the transition."""

    def revoke_family(self, family_root_id: str) -> int:
        """
        Revoke every ACTIVE or ROTATED member of a family.

        :returns: Number of tokens affected.
        """

    def revoke_all_by_user(self, user_id: str) -> int:
        """
        Revoke every ACTIVE or ROTATED token of a user.

        :returns: Number of tokens affected.
        """

    def find_family_root_id(self, token_id: str) -> str | None:
        """Return the family root id of a token, if the token exists."""

    def list_family(self, family_root_id: str) -> list[RefreshToken]:
        """Return all members of a family ordered by issue time."""

    def list_by_user(self, user_id: str) -> list[RefreshToken]:
        """Return all tokens of a user ordered by issue time."""

    def delete_expired(self, before: datetime) -> int:
        """
        Delete tokens whose ``expires_at`` is at or before ``before``.

        :returns: Number of rows removed.
        """


_REVOCABLE = (RefreshTokenStatus.ACTIVE, RefreshTokenStatus.ROTATED)


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh token store with atomic conditional transitions.

    .. note::
       A single lock guards all maps; each public method holds it for the
       whole read-compare-write.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, RefreshToken] = {}
        self._by_hash: dict[str, str] = {}
        self._by_user: dict[str, set[str]] = {}
        self._by_family: dict[str, set[str]] = {}
        self._seq = 0
        self._lock = threading.Lock()

    # ------------------------- helpers -------------------------

    def _insert(self, token: RefreshToken) -> None:
        if token.token_id in self._by_id:
            raise ValueError(f"duplicate refresh token id: {token.token_id}")
        if token.token_hash in self._by_hash:
            raise ValueError("duplicate refresh token hash")
        stored = token.without_value()
        self._by_id[stored.token_id] = stored
        self._by_hash[stored.token_hash] = stored.token_id
        self._by_user.setdefault(stored.user_id, set()).add(stored.token_id)
        self._by_family.setdefault(stored.family_root_id, set()).add(stored.token_id)

    def _transition(self, token_id: str, expected: Iterable[RefreshTokenStatus], to: RefreshTokenStatus) -> bool:
        current = self._by_id.get(token_id)
        if current is None or current.status not in tuple(expected):
            return False
        self._by_id[token_id] = replace(current, status=to)
        return True

    def _sorted(self, ids: Iterable[str]) -> list[RefreshToken]:
        return sorted((self._by_id[i] for i in ids), key=lambda t: (t.issued_at, t.token_id))

    # -------------------------- API ----------------------------

    def new_token_id(self) -> str:
        """Generate a new id controlled by the store."""
        with self._lock:
            self._seq += 1
            return f"rt-{self._seq}"

    def save(self, token: RefreshToken) -> None:
        with self._lock:
            self._insert(token)

    def find_by_hash(self, token_hash: str) -> RefreshToken | None:
        with self._lock:
            token_id = self._by_hash.get(token_hash)
            return self._by_id.get(token_id) if token_id else None

    def find_by_id(self, token_id: str) -> RefreshToken | None:
        with self._lock:
            return self._by_id.get(token_id)

    def mark_rotated(self, token_id: str) -> bool:
        with self._lock:
            return self._transition(token_id, (RefreshTokenStatus.ACTIVE,), RefreshTokenStatus.ROTATED)

    def rotate(self, parent_id: str, child: RefreshToken) -> bool:
        with self._lock:
            if not self._transition(parent_id, (RefreshTokenStatus.ACTIVE,), RefreshTokenStatus.ROTATED):
                return False
            self._insert(child)
            return True

    def mark_revoked(self, token_id: str) -> bool:
        with self._lock:
            return self._transition(token_id, (RefreshTokenStatus.ACTIVE,), RefreshTokenStatus.REVOKED)

    def revoke_family(self, family_root_id: str) -> int:
        with self._lock:
            ids = list(self._by_family.get(family_root_id, ()))
            return sum(self._transition(i, _REVOCABLE, RefreshTokenStatus.REVOKED) for i in ids)

    def revoke_all_by_user(self, user_id: str) -> int:
        with self._lock:
            ids = list(self._by_user.get(user_id, ()))
            return sum(self._transition(i, _REVOCABLE, RefreshTokenStatus.REVOKED) for i in ids)

    def find_family_root_id(self, token_id: str) -> str | None:
        with self._lock:
            token = self._by_id.get(token_id)
            return token.family_root_id if token else None

    def list_family(self, family_root_id: str) -> list[RefreshToken]:
        with self._lock:
            return self._sorted(self._by_family.get(family_root_id, ()))

    def list_by_user(self, user_id: str) -> list[RefreshToken]:
        with self._lock:
            return self._sorted(self._by_user.get(user_id, ()))

    def delete_expired(self, before: datetime) -> int:
        with self._lock:
            doomed = [t for t in self._by_id.values() if t.expires_at <= before]
            for token in doomed:
                del self._by_id[token.token_id]
                self._by_hash.pop(token.token_hash, None)
                self._by_user.get(token.user_id, set()).discard(token.token_id)
                self._by_family.get(token.family_root_id, set()).discard(token.token_id)
            return len(doomed)
