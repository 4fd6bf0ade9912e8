# studydesk/api/deps.py
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from studydesk.core.config import Settings, get_settings
from studydesk.core.errors import AuthError, AuthFailure
from studydesk.core.tokens import Clock, TokenCodec, utcnow
from studydesk.db.session import get_db
from studydesk.services.sessions import Principal, SessionManager, authenticate_request

__all__ = [
    "get_db",
    "get_settings",
    "get_clock",
    "get_token_codec",
    "get_session_manager",
    "get_authorization",
    "get_current_principal",
]


def get_clock() -> Clock:
    return utcnow


# ----------------------------------------------------------------------
# Um codec por objeto Settings (imutável): chave carregada uma vez só
# ----------------------------------------------------------------------
@lru_cache
def _codec_for(settings: Settings) -> TokenCodec:
    return TokenCodec.from_settings(settings)


def get_token_codec(settings: Settings = Depends(get_settings)) -> TokenCodec:
    return _codec_for(settings)


def get_session_manager(
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> SessionManager:
    return SessionManager(db, codec, settings, clock=clock)


def get_authorization(authorization: Optional[str] = Header(None, alias="Authorization")) -> Optional[str]:
    return authorization


# ----------------------------------------------------------------------
# Autentica o request pelo Bearer, sem tocar no banco
# ----------------------------------------------------------------------
def get_current_principal(
    authorization: Optional[str] = Depends(get_authorization),
    codec: TokenCodec = Depends(get_token_codec),
) -> Principal:
    result = authenticate_request(codec, authorization)
    if isinstance(result, AuthFailure):
        raise AuthError(result)
    return result
