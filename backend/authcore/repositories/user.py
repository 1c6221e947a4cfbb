"""User repository implementing the account store port."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from authcore.models.user import User
from authcore.repositories.base import BaseRepository
from authcore.services._shared.errors import NotFoundError
from authcore.services._shared.policies.lockout import FailureOutcome, LockoutPolicy
from authcore.services._shared.ports.user_store import (
    DuplicateEmailError,
    UserAccount,
    UserAccountStore,
    UserStatus,
    normalize_email,
)


def to_account(row: User) -> UserAccount:
    """Map a :class:`User` row to the service-layer read model."""
    return UserAccount(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        status=UserStatus(row.status),
        failed_login_attempts=row.failed_login_attempts or 0,
        lockout_until=row.lockout_until,
        lockout_count=row.lockout_count or 0,
        last_failed_login_at=row.last_failed_login_at,
        last_login_at=row.last_login_at,
        password_changed_at=row.password_changed_at,
    )


class UserRepository(BaseRepository[User], UserAccountStore):
    """SQLAlchemy-backed :class:`UserAccountStore`.

    This repository only persists credential and lockout state; it never
    verifies passwords or issues tokens.
    """

    model = User

    # Columns copied from the read model on save
    _writable = (
        "email",
        "password_hash",
        "status",
        "failed_login_attempts",
        "lockout_until",
        "lockout_count",
        "last_failed_login_at",
        "last_login_at",
        "password_changed_at",
    )

    def get(self, user_id: str) -> UserAccount | None:  # type: ignore[override]
        row = self.session.get(User, str(user_id))
        return to_account(row) if row is not None else None

    def get_by_email(self, email: str) -> UserAccount | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :returns: Account or ``None`` when not found.
        """
        stmt = select(User).where(User.email == normalize_email(email))
        row = self.session.execute(stmt).scalars().first()
        return to_account(row) if row is not None else None

    def add(self, account: UserAccount) -> UserAccount:  # type: ignore[override]
        row = User(
            email=account.email,
            password_hash=account.password_hash,
            status=account.status.value,
        )
        if account.id:
            row.id = account.id
        try:
            with self.transaction() as session:
                session.add(row)
                session.flush()
                created = to_account(row)
        except IntegrityError as exc:
            raise DuplicateEmailError(f"email already registered: {row.email}") from exc
        return created

    def save(self, account: UserAccount) -> None:
        with self.transaction() as session:
            row = session.get(User, account.id)
            if row is None:
                raise NotFoundError("User", account.id)
            for name in self._writable:
                value = getattr(account, name)
                setattr(row, name, value.value if isinstance(value, UserStatus) else value)

    def _reload(self, user_id: str) -> UserAccount | None:
        row = self.session.get(User, user_id, populate_existing=True)
        return to_account(row) if row is not None else None

    def register_failed_login(
        self, user_id: str, now: datetime, policy: LockoutPolicy
    ) -> FailureOutcome | None:
        """Increment the failure counter in SQL and lock once the threshold is reached.

        The counter increment is a single ``UPDATE ... RETURNING`` so concurrent
        failures serialise on the row lock instead of overwriting each other.
        """
        user_id = str(user_id)
        with self.transaction():
            attempts = self._returning(
                update(User)
                .where(
                    User.id == user_id,
                    or_(User.lockout_until.is_(None), User.lockout_until <= now),
                )
                .values(
                    failed_login_attempts=User.failed_login_attempts + 1,
                    last_failed_login_at=now,
                )
                .returning(User.failed_login_attempts)
            )
            if attempts is None:
                account = self._reload(user_id)
                return FailureOutcome(account=account, locked=False) if account else None
            locked = False
            if attempts >= policy.max_failed_attempts:
                lockout_count = self._returning(
                    update(User)
                    .where(User.id == user_id)
                    .values(lockout_count=User.lockout_count + 1)
                    .returning(User.lockout_count)
                )
                self._rowcount(
                    update(User)
                    .where(User.id == user_id)
                    .values(lockout_until=now + policy.lock_duration(lockout_count))
                )
                locked = True
            account = self._reload(user_id)
        if account is None:
            return None
        return FailureOutcome(account=account, locked=locked)

    def register_successful_login(
        self, user_id: str, now: datetime, *, expected_hash: str
    ) -> UserAccount | None:
        user_id = str(user_id)
        with self.transaction():
            matched = self._rowcount(
                update(User)
                .where(User.id == user_id, User.password_hash == expected_hash)
                .values(failed_login_attempts=0, lockout_until=None, last_login_at=now)
            )
            account = self._reload(user_id) if matched == 1 else None
        return account

    def change_password(
        self,
        user_id: str,
        password_hash: str,
        *,
        changed_at: datetime | None = None,
        expected_hash: str | None = None,
        clear_lockout: bool = False,
    ) -> bool:
        stmt = update(User).where(User.id == str(user_id))
        if expected_hash is not None:
            stmt = stmt.where(User.password_hash == expected_hash)
        values: dict[str, object] = {"password_hash": password_hash}
        if changed_at is not None:
            values["password_changed_at"] = changed_at
        if clear_lockout:
            values.update(failed_login_attempts=0, lockout_until=None)
        with self.transaction():
            return self._rowcount(stmt.values(**values)) == 1

    def activate(self, user_id: str) -> bool:
        with self.transaction():
            return (
                self._rowcount(
                    update(User)
                    .where(
                        User.id == str(user_id),
                        User.status == UserStatus.PENDING_VERIFICATION.value,
                    )
                    .values(status=UserStatus.ACTIVE.value)
                )
                == 1
            )
