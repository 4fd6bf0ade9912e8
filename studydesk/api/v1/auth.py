# studydesk/api/v1/auth.py
"""
Thin HTTP wrappers over SessionManager.

Handlers are plain ``def`` so FastAPI runs them (and bcrypt) in its
threadpool instead of on the event loop.
"""
from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, Path, status

from studydesk.api.deps import get_authorization, get_session_manager
from studydesk.api.permissions import Role, require_roles
from studydesk.core.errors import AuthError, AuthErrorKind, AuthFailure
from studydesk.schemas.token import LoginIn, LogoutOut, RefreshIn, RevokeSessionsOut, SessionOut
from studydesk.schemas.user import RegisterIn, UserOut
from studydesk.services.sessions import SessionManager, SessionTokens, parse_bearer

router = APIRouter()


def _unwrap(result: Union[object, AuthFailure]):
    if isinstance(result, AuthFailure):
        raise AuthError(result)
    return result


def _session_response(tokens: SessionTokens) -> SessionOut:
    return SessionOut(
        user=tokens.profile,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


# ---------- endpoints ----------
@router.post("/register", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def register(body: RegisterIn, manager: SessionManager = Depends(get_session_manager)):
    tokens = _unwrap(manager.register(body.email, body.password, body.name))
    return _session_response(tokens)


@router.post("/login", response_model=SessionOut)
def login(body: LoginIn, manager: SessionManager = Depends(get_session_manager)):
    tokens = _unwrap(manager.login(body.email, body.password))
    return _session_response(tokens)


@router.post("/refresh", response_model=SessionOut)
def refresh(body: RefreshIn, manager: SessionManager = Depends(get_session_manager)):
    tokens = _unwrap(manager.refresh(body.refresh_token))
    return _session_response(tokens)


@router.post("/logout", response_model=LogoutOut)
def logout(
    authorization: Optional[str] = Depends(get_authorization),
    manager: SessionManager = Depends(get_session_manager),
):
    token = parse_bearer(authorization)
    if token is None:
        raise AuthError(AuthFailure.of(AuthErrorKind.TOKEN_INVALID))
    ack = _unwrap(manager.logout(token))
    return LogoutOut(message=ack.message, revoked_sessions=ack.revoked_sessions)


@router.get("/user", response_model=UserOut)
def current_user(
    authorization: Optional[str] = Depends(get_authorization),
    manager: SessionManager = Depends(get_session_manager),
):
    profile = _unwrap(manager.current_user(authorization))
    return UserOut(user=profile)


@router.post(
    "/users/{user_id}/revoke-sessions",
    response_model=RevokeSessionsOut,
    dependencies=[Depends(require_roles(Role.ADMIN))],
)
def revoke_sessions(
    user_id: str = Path(..., min_length=1, max_length=36),
    manager: SessionManager = Depends(get_session_manager),
):
    revoked = _unwrap(manager.revoke_user_sessions(user_id))
    return RevokeSessionsOut(user_id=user_id, revoked_sessions=revoked)
