"""Refresh token repository implementing :class:`RefreshTokenStore`."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import delete, select, update

from authcore.models.refresh_token import RefreshTokenRecord
from authcore.repositories.base import BaseRepository
from authcore.services._shared.ports.refresh_token_store import RefreshTokenStore
from authcore.services._shared.tokens import RefreshToken, RefreshTokenStatus

_ACTIVE = RefreshTokenStatus.ACTIVE.value
_REVOCABLE = (RefreshTokenStatus.ACTIVE.value, RefreshTokenStatus.ROTATED.value)


def to_token(row: RefreshTokenRecord) -> RefreshToken:
    return RefreshToken(
        token_id=row.id,
        user_id=row.user_id,
        family_root_id=row.family_root_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        token_hash=row.token_hash,
        parent_token_id=row.parent_token_id,
        status=RefreshTokenStatus(row.status),
        device_info=row.device_info,
    )


def to_record(token: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        id=token.token_id,
        user_id=token.user_id,
        family_root_id=token.family_root_id,
        parent_token_id=token.parent_token_id,
        token_hash=token.token_hash,
        status=token.status.value,
        device_info=token.device_info,
        issued_at=token.issued_at,
        expires_at=token.expires_at,
    )


class RefreshTokenRepository(BaseRepository[RefreshTokenRecord], RefreshTokenStore):
    """
    SQL refresh token store.

    Every transition is ``UPDATE ... WHERE status IN (...)`` with a row-count
    check, so two racing requests can never both win the same transition.
    """

    model = RefreshTokenRecord

    def new_token_id(self) -> str:
        return uuid4().hex

    def save(self, token: RefreshToken) -> None:
        with self.transaction() as session:
            session.add(to_record(token))

    def find_by_hash(self, token_hash: str) -> RefreshToken | None:
        stmt = select(RefreshTokenRecord).where(RefreshTokenRecord.token_hash == token_hash)
        row = self.session.execute(stmt).scalars().first()
        return to_token(row) if row is not None else None

    def find_by_id(self, token_id: str) -> RefreshToken | None:
        row = self.session.get(RefreshTokenRecord, token_id)
        return to_token(row) if row is not None else None

    def _set_status(self, token_id: str, expected: tuple[str, ...], to: RefreshTokenStatus) -> int:
        return self._rowcount(
            update(RefreshTokenRecord)
            .where(RefreshTokenRecord.id == token_id, RefreshTokenRecord.status.in_(expected))
            .values(status=to.value)
        )

    def mark_rotated(self, token_id: str) -> bool:
        with self.transaction():
            return self._set_status(token_id, (_ACTIVE,), RefreshTokenStatus.ROTATED) == 1

    def rotate(self, parent_id: str, child: RefreshToken) -> bool:
        with self.transaction() as session:
            if self._set_status(parent_id, (_ACTIVE,), RefreshTokenStatus.ROTATED) != 1:
                return False
            session.add(to_record(child))
            return True

    def mark_revoked(self, token_id: str) -> bool:
        with self.transaction():
            return self._set_status(token_id, (_ACTIVE,), RefreshTokenStatus.REVOKED) == 1

    def revoke_family(self, family_root_id: str) -> int:
        with self.transaction():
            return self._rowcount(
                update(RefreshTokenRecord)
                .where(
                    RefreshTokenRecord.family_root_id == family_root_id,
                    RefreshTokenRecord.status.in_(_REVOCABLE),
                )
                .values(status=RefreshTokenStatus.REVOKED.value)
            )

    def revoke_all_by_user(self, user_id: str) -> int:
        with self.transaction():
            return self._rowcount(
                update(RefreshTokenRecord)
                .where(
                    RefreshTokenRecord.user_id == user_id,
                    RefreshTokenRecord.status.in_(_REVOCABLE),
                )
                .values(status=RefreshTokenStatus.REVOKED.value)
            )

    def find_family_root_id(self, token_id: str) -> str | None:
        stmt = select(RefreshTokenRecord.family_root_id).where(RefreshTokenRecord.id == token_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_family(self, family_root_id: str) -> list[RefreshToken]:
        stmt = (
            select(RefreshTokenRecord)
            .where(RefreshTokenRecord.family_root_id == family_root_id)
            .order_by(RefreshTokenRecord.issued_at, RefreshTokenRecord.id)
        )
        return [to_token(row) for row in self.session.execute(stmt).scalars()]

    def list_by_user(self, user_id: str) -> list[RefreshToken]:
        stmt = (
            select(RefreshTokenRecord)
            .where(RefreshTokenRecord.user_id == user_id)
            .order_by(RefreshTokenRecord.issued_at, RefreshTokenRecord.id)
        )
        return [to_token(row) for row in self.session.execute(stmt).scalars()]

    def delete_expired(self, before: datetime) -> int:
        with self.transaction() as session:
            result = session.execute(
                delete(RefreshTokenRecord)
                .where(RefreshTokenRecord.expires_at <= before)
                .execution_options(synchronize_session=False)
            )
            return int(result.rowcount or 0)  # type: ignore[attr-defined]
