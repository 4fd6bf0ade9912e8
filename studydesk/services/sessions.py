# studydesk/services/sessions.py
"""
Session lifecycle: login, refresh, logout and per-request authentication.

Every public method returns either a success value or an ``AuthFailure``;
store outages come back as a retryable failure instead of an exception, so
route handlers never see SQLAlchemy errors.

Access tokens are stateless. Logout deletes the user's refresh records but an
access token already handed out stays valid until its own ``exp``; there is
no server-side revocation for them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studydesk.core.config import Settings
from studydesk.core.errors import AuthErrorKind, AuthFailure, StoreUnavailable
from studydesk.core.security import (
    dummy_verify,
    hash_password,
    hash_token,
    verify_and_maybe_upgrade,
)
from studydesk.core.tokens import Clock, TokenCodec, TokenFailure, utcnow
from studydesk.crud.base import as_utc
from studydesk.crud.refresh_token import SessionStore
from studydesk.crud.user import CRUDUser, normalize_email
from studydesk.models.user import ROLE_STUDENT, User
from studydesk.schemas.user import UserProfile

log = structlog.get_logger(__name__)

POLICY_REUSE = "reuse"
POLICY_SINGLE_USE = "single_use"


@dataclass(frozen=True, slots=True)
class Principal:
    user_id: str
    role: str
    email: str


@dataclass(frozen=True, slots=True)
class SessionTokens:
    profile: UserProfile
    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True, slots=True)
class LogoutAck:
    message: str
    revoked_sessions: int


def _failure(kind: AuthErrorKind, message: Optional[str] = None) -> AuthFailure:
    return AuthFailure.of(kind, message)


def _token_failure(reason: TokenFailure) -> AuthFailure:
    if reason is TokenFailure.EXPIRED:
        return _failure(AuthErrorKind.TOKEN_EXPIRED)
    return _failure(AuthErrorKind.TOKEN_INVALID)


def parse_bearer(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def authenticate_request(codec: TokenCodec, authorization: Optional[str]) -> Union[Principal, AuthFailure]:
    """Hot path: signature and expiry only, no database. Fails closed."""
    token = parse_bearer(authorization)
    if token is None:
        return _failure(AuthErrorKind.TOKEN_INVALID)
    verified = codec.verify_access_token(token)
    if isinstance(verified, TokenFailure):
        return _token_failure(verified)
    return Principal(user_id=verified.user_id, role=verified.role, email=verified.email)


class SessionManager:
    def __init__(
        self,
        db: Session,
        codec: TokenCodec,
        settings: Settings,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.codec = codec
        self.settings = settings
        self.clock = clock
        self.users = CRUDUser(db)
        self.store = SessionStore(db, clock=clock)

    # ---------- helpers ----------
    def profile_of(self, user: User) -> UserProfile:
        return UserProfile(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            avatar=user.avatar_url or self.settings.DEFAULT_AVATAR_URL,
            created_at=as_utc(user.created_at),
            last_login_at=as_utc(user.last_login_at),
        )

    def _mint(self, user: User) -> SessionTokens:
        """Issue a fresh pair and stage the refresh hash; caller commits."""
        access = self.codec.issue_access_token(user_id=user.id, role=user.role, email=user.email)
        refresh = self.codec.issue_refresh_secret()
        self.store.put(user.id, hash_token(refresh), self.codec.refresh_expires_at())
        return SessionTokens(
            profile=self.profile_of(user),
            access_token=access,
            refresh_token=refresh,
            expires_in=self.codec.access_expires_in,
        )

    def _unavailable(self, event: str, **kw) -> AuthFailure:
        log.warning(event, reason="store_unavailable", **kw)
        return _failure(AuthErrorKind.STORE_UNAVAILABLE)

    # ---------- operações ----------
    def register(self, email: str, password: str, name: str) -> Union[SessionTokens, AuthFailure]:
        email = normalize_email(email)
        try:
            if self.users.get_by_email(email) is not None:
                return _failure(AuthErrorKind.EMAIL_TAKEN)
            user = self.users.create(
                email=email,
                password_hash=hash_password(password),
                name=name,
                role=ROLE_STUDENT,
                avatar_url=self.settings.DEFAULT_AVATAR_URL,
            )
            self.users.touch_last_login(user, self.clock())
            tokens = self._mint(user)
            self.users.commit()
        except IntegrityError:
            # corrida: outro cadastro com o mesmo e-mail venceu
            self.db.rollback()
            return _failure(AuthErrorKind.EMAIL_TAKEN)
        except StoreUnavailable:
            return self._unavailable("register_failed")
        log.info("register_succeeded", user_id=user.id)
        return tokens

    def login(self, email: str, password: str) -> Union[SessionTokens, AuthFailure]:
        try:
            user = self.users.get_by_email(email)
            if user is None:
                dummy_verify()
                log.warning("login_failed", reason="invalid_credentials")
                return _failure(AuthErrorKind.INVALID_CREDENTIALS)

            ok, new_hash = verify_and_maybe_upgrade(password, user.password_hash)
            if not ok:
                log.warning("login_failed", reason="invalid_credentials")
                return _failure(AuthErrorKind.INVALID_CREDENTIALS)
            if new_hash:
                self.users.set_password_hash(user, new_hash)

            self.users.touch_last_login(user, self.clock())
            # manutenção oportunista junto com a escrita do novo refresh
            purged = self.store.delete_expired()
            tokens = self._mint(user)
            self.store.commit()
        except StoreUnavailable:
            return self._unavailable("login_failed")
        log.info("login_succeeded", user_id=user.id, purged_refresh_tokens=purged)
        return tokens

    def refresh(self, refresh_token: str) -> Union[SessionTokens, AuthFailure]:
        verified = self.codec.verify_refresh_secret(refresh_token)
        if isinstance(verified, TokenFailure):
            log.info("refresh_rejected", reason=verified.value)
            return _token_failure(verified)

        try:
            record = self.store.find_valid(hash_token(refresh_token))
            if record is None:
                log.info("refresh_rejected", reason="not_found")
                return _failure(AuthErrorKind.TOKEN_INVALID)
            user_id = record.user_id

            if self.settings.REFRESH_TOKEN_POLICY == POLICY_SINGLE_USE:
                if not self.store.consume(record):
                    self.store.rollback()
                    log.warning("refresh_rejected", reason="already_consumed", user_id=user_id)
                    return _failure(AuthErrorKind.TOKEN_INVALID)

            user = self.users.get(user_id)
            if user is None:
                self.store.rollback()
                return _failure(AuthErrorKind.NOT_FOUND)

            tokens = self._mint(user)
            self.store.commit()
        except StoreUnavailable:
            return self._unavailable("refresh_failed")
        log.info("refresh_succeeded", user_id=user.id, policy=self.settings.REFRESH_TOKEN_POLICY)
        return tokens

    def logout(self, access_token: str) -> Union[LogoutAck, AuthFailure]:
        verified = self.codec.verify_access_token(access_token)
        if isinstance(verified, TokenFailure):
            return _token_failure(verified)
        try:
            revoked = self.store.delete_all_for_user(verified.user_id)
            self.store.commit()
        except StoreUnavailable:
            return self._unavailable("logout_failed", user_id=verified.user_id)
        log.info("logout_completed", user_id=verified.user_id, revoked_sessions=revoked)
        return LogoutAck(
            message="Logged out successfully. All refresh tokens have been invalidated.",
            revoked_sessions=revoked,
        )

    def authenticate(self, authorization: Optional[str]) -> Union[Principal, AuthFailure]:
        return authenticate_request(self.codec, authorization)

    def current_user(self, authorization: Optional[str]) -> Union[UserProfile, AuthFailure]:
        principal = self.authenticate(authorization)
        if isinstance(principal, AuthFailure):
            return principal
        try:
            user = self.users.get(principal.user_id)
        except StoreUnavailable:
            return self._unavailable("current_user_failed", user_id=principal.user_id)
        if user is None:
            return _failure(AuthErrorKind.NOT_FOUND)
        return self.profile_of(user)

    def revoke_user_sessions(self, user_id: str) -> Union[int, AuthFailure]:
        try:
            if self.users.get(user_id) is None:
                return _failure(AuthErrorKind.NOT_FOUND)
            revoked = self.store.delete_all_for_user(user_id)
            self.store.commit()
        except StoreUnavailable:
            return self._unavailable("revoke_sessions_failed", user_id=user_id)
        log.info("sessions_revoked", user_id=user_id, revoked_sessions=revoked)
        return revoked
