"""Password reset token repository implementing :class:`ResetTokenStore`."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import delete, select, update

from authcore.models.password_reset_token import PasswordResetTokenRecord
from authcore.repositories.base import BaseRepository
from authcore.services._shared.ports.reset_token_store import ResetTokenStore
from authcore.services._shared.tokens import PasswordResetToken, PasswordResetTokenStatus

_ACTIVE = PasswordResetTokenStatus.ACTIVE.value


def to_token(row: PasswordResetTokenRecord) -> PasswordResetToken:
    return PasswordResetToken(
        token_id=row.id,
        user_id=row.user_id,
        email=row.email,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        token_hash=row.token_hash,
        status=PasswordResetTokenStatus(row.status),
        used_at=row.used_at,
        revoked_at=row.revoked_at,
    )


class PasswordResetTokenRepository(BaseRepository[PasswordResetTokenRecord], ResetTokenStore):
    """SQL reset token store with conditional ACTIVE → USED/REVOKED updates."""

    model = PasswordResetTokenRecord

    def new_token_id(self) -> str:
        return uuid4().hex

    def save(self, token: PasswordResetToken) -> None:
        with self.transaction() as session:
            session.add(
                PasswordResetTokenRecord(
                    id=token.token_id,
                    user_id=token.user_id,
                    email=token.email,
                    token_hash=token.token_hash,
                    status=token.status.value,
                    issued_at=token.issued_at,
                    expires_at=token.expires_at,
                    used_at=token.used_at,
                    revoked_at=token.revoked_at,
                )
            )

    def find_by_hash(self, token_hash: str) -> PasswordResetToken | None:
        stmt = select(PasswordResetTokenRecord).where(PasswordResetTokenRecord.token_hash == token_hash)
        row = self.session.execute(stmt).scalars().first()
        return to_token(row) if row is not None else None

    def find_by_id(self, token_id: str) -> PasswordResetToken | None:
        row = self.session.get(PasswordResetTokenRecord, token_id)
        return to_token(row) if row is not None else None

    def mark_used(self, token_id: str, at: datetime) -> bool:
        with self.transaction():
            return (
                self._rowcount(
                    update(PasswordResetTokenRecord)
                    .where(PasswordResetTokenRecord.id == token_id, PasswordResetTokenRecord.status == _ACTIVE)
                    .values(status=PasswordResetTokenStatus.USED.value, used_at=at)
                )
                == 1
            )

    def revoke_all_by_user(self, user_id: str, at: datetime) -> int:
        with self.transaction():
            return self._rowcount(
                update(PasswordResetTokenRecord)
                .where(PasswordResetTokenRecord.user_id == user_id, PasswordResetTokenRecord.status == _ACTIVE)
                .values(status=PasswordResetTokenStatus.REVOKED.value, revoked_at=at)
            )

    def list_by_user(self, user_id: str) -> list[PasswordResetToken]:
        stmt = (
            select(PasswordResetTokenRecord)
            .where(PasswordResetTokenRecord.user_id == user_id)
            .order_by(PasswordResetTokenRecord.issued_at, PasswordResetTokenRecord.id)
        )
        return [to_token(row) for row in self.session.execute(stmt).scalars()]

    def delete_expired(self, before: datetime) -> int:
        with self.transaction() as session:
            result = session.execute(
                delete(PasswordResetTokenRecord)
                .where(PasswordResetTokenRecord.expires_at <= before)
                .execution_options(synchronize_session=False)
            )
            return int(result.rowcount or 0)  # type: ignore[attr-defined]
