# studydesk/crud/refresh_token.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from studydesk.core.tokens import Clock, utcnow
from studydesk.crud.base import CRUDBase, store_guard
from studydesk.models.refresh_token import RefreshToken


class SessionStore(CRUDBase[RefreshToken]):
    """
    Durable record of issued refresh tokens.

    Rows hold (user_id, sha256(secret), expires_at). Nothing here commits:
    the caller owns the transaction. Any connectivity or timeout failure
    surfaces as StoreUnavailable.
    """

    def __init__(self, db: Session, clock: Clock = utcnow):
        super().__init__(RefreshToken, db)
        self._clock = clock

    def put(self, user_id: str, token_hash: str, expires_at: datetime) -> RefreshToken:
        return self.add(RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at))

    def find_valid(self, token_hash: str) -> Optional[RefreshToken]:
        # expirado mas ainda presente nunca conta como válido
        stmt = select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.expires_at > self._clock(),
        )
        with store_guard(self.db, "find refresh token"):
            return self.db.execute(stmt).scalar_one_or_none()

    def consume(self, record: RefreshToken) -> bool:
        """Compare-and-delete on one row: True only for the caller that removed it."""
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.id == record.id, RefreshToken.expires_at > self._clock())
            .execution_options(synchronize_session=False)
        )
        with store_guard(self.db, "consume refresh token"):
            return self.db.execute(stmt).rowcount == 1

    def delete_expired(self) -> int:
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= self._clock())
            .execution_options(synchronize_session=False)
        )
        with store_guard(self.db, "purge expired refresh tokens"):
            return self.db.execute(stmt).rowcount or 0

    def delete_all_for_user(self, user_id: str) -> int:
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        with store_guard(self.db, "revoke user refresh tokens"):
            return self.db.execute(stmt).rowcount or 0
