"""Password strength rules for newly chosen passwords."""

from __future__ import annotations

import re

from authcore.services._shared.errors import WeakCredentialError

MIN_PASSWORD_LENGTH = 8

_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a number"),
    (re.compile(r"[^A-Za-z0-9]"), "a special character"),
)


def missing_requirements(password: str) -> list[str]:
    """Return the unmet requirements of ``password`` (empty when strong)."""
    missing: list[str] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        missing.append(f"at least {MIN_PASSWORD_LENGTH} characters")
    missing.extend(label for pattern, label in _RULES if not pattern.search(password))
    return missing


def validate_password_strength(password: str) -> None:
    """
    :raises WeakCredentialError: Listing every unmet requirement.
    """
    missing = missing_requirements(password)
    if missing:
        raise WeakCredentialError(missing)
