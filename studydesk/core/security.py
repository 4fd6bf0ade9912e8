# studydesk/core/security.py
from __future__ import annotations

import hashlib
from functools import lru_cache
from typing import Optional, Tuple

from passlib.context import CryptContext

from studydesk.core.config import get_settings

# bcrypt só considera os primeiros 72 bytes; schemas rejeitam acima disso
MAX_PASSWORD_BYTES = 72


@lru_cache
def password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def _ctx(rounds: Optional[int] = None) -> CryptContext:
    return password_context(rounds or get_settings().BCRYPT_ROUNDS)


def hash_password(plain: str, *, rounds: Optional[int] = None) -> str:
    """Salted bcrypt hash. Expensive on purpose; call from a worker thread."""
    return _ctx(rounds).hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return _ctx().verify(plain, hashed)
    except (ValueError, TypeError):
        # hash em formato desconhecido/corrompido
        return False


def verify_and_maybe_upgrade(plain: str, hashed: str) -> Tuple[bool, str | None]:
    """Returns (ok, new_hash) where new_hash is set when the stored cost is outdated."""
    if not verify_password(plain, hashed):
        return False, None
    ctx = _ctx()
    if ctx.needs_update(hashed):
        return True, ctx.hash(plain)
    return True, None


def dummy_verify() -> None:
    """Spend the same CPU as a real verify, for accounts that do not exist."""
    _ctx().dummy_verify()


def hash_token(secret: str) -> str:
    # lookup key only: the secret already has >= 256 bits of entropy
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()
