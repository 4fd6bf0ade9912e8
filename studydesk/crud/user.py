# studydesk/crud/user.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from studydesk.crud.base import CRUDBase, store_guard
from studydesk.models.user import ROLE_STUDENT, User


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class CRUDUser(CRUDBase[User]):
    def __init__(self, db: Session):
        super().__init__(User, db)

    def get_by_email(self, email: str) -> Optional[User]:
        with store_guard(self.db, "get user by email"):
            return self.db.execute(
                select(User).where(User.email == normalize_email(email))
            ).scalar_one_or_none()

    def create(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: str = ROLE_STUDENT,
        avatar_url: Optional[str] = None,
    ) -> User:
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            name=name.strip(),
            role=role,
            avatar_url=avatar_url,
        )
        return self.add(user)

    def touch_last_login(self, user: User, when: datetime) -> None:
        with store_guard(self.db, "update last login"):
            user.last_login_at = when
            self.db.flush()

    def set_password_hash(self, user: User, password_hash: str) -> None:
        with store_guard(self.db, "update password hash"):
            user.password_hash = password_hash
            self.db.flush()
