"""Password hashing adapter backed by :mod:`werkzeug.security`."""

from __future__ import annotations

from functools import cached_property

from werkzeug.security import check_password_hash, generate_password_hash

from authcore.services._shared.ports import PasswordHasher


class WerkzeugPasswordHasher(PasswordHasher):
    """
    Salted password hashes in Werkzeug's ``method$salt$hash`` format.

    :param method: Werkzeug method string, e.g. ``"scrypt"`` or
        ``"pbkdf2:sha256:600000"``. Hashes whose method segment differs from
        the one this method produces today are reported by :meth:`needs_rehash`.
    """

    def __init__(self, method: str = "scrypt") -> None:
        self.method = method

    @cached_property
    def _current_prefix(self) -> str:
        # Werkzeug expands defaults (cost factors, iterations) into the prefix
        return generate_password_hash("sample", method=self.method).split("$", 1)[0]

    def hash(self, plaintext: str) -> str:
        return generate_password_hash(plaintext, method=self.method)

    def verify(self, plaintext: str, hashed: str) -> bool:
        if not hashed:
            return False
        try:
            return check_password_hash(hashed, plaintext)
        except ValueError:
            # unknown or corrupt method segment
            return False

    def needs_rehash(self, hashed: str) -> bool:
        return hashed.split("$", 1)[0] != self._current_prefix
