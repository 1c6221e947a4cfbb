"""Credential verifier port."""

from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """
    Hash and verify user passwords.

    Implementations live under ``authcore.infra.security``; the algorithm is
    theirs to choose. ``needs_rehash`` lets login upgrade stale hashes.
    """

    def hash(self, plaintext: str) -> str:
        """Return a salted hash suitable for storage."""

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return ``True`` when ``plaintext`` matches ``hashed``."""

    def needs_rehash(self, hashed: str) -> bool:
        """Return ``True`` when ``hashed`` was produced with outdated parameters."""
