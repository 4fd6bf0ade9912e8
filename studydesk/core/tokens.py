# studydesk/core/tokens.py
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from jose import JWTError, jwt
from pydantic import ValidationError

from studydesk.core.config import Settings
from studydesk.schemas.token import CLAIMS_VERSION, AccessTokenClaims, RefreshTokenClaims

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenFailure(str, Enum):
    INVALID = "invalid"   # assinatura/estrutura: rejeitar
    EXPIRED = "expired"   # estruturalmente ok, mas passou do exp: pedir refresh


AccessVerification = Union[AccessTokenClaims, TokenFailure]
RefreshVerification = Union[RefreshTokenClaims, TokenFailure]


class TokenCodec:
    """
    Creates and verifies the two credential kinds.

    Access tokens are self-describing (sub, role, email) and verified without
    any database access. Refresh tokens are signed with a separate key and
    carry only a random jti: who owns one is known only to the session store.
    """

    def __init__(
        self,
        *,
        secret_key: str,
        refresh_secret_key: str,
        algorithm: str = "HS256",
        issuer: str = "studydesk",
        access_audience: str = "studydesk-users",
        refresh_audience: str = "studydesk-refresh",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Clock = utcnow,
    ):
        if not secret_key or not refresh_secret_key:
            raise ValueError("signing keys must be configured")
        self._secret_key = secret_key
        self._refresh_secret_key = refresh_secret_key
        self.algorithm = algorithm
        self.issuer = issuer
        self.access_audience = access_audience
        self.refresh_audience = refresh_audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utcnow) -> "TokenCodec":
        return cls(
            secret_key=settings.SECRET_KEY,
            refresh_secret_key=settings.REFRESH_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            issuer=settings.JWT_ISSUER,
            access_audience=settings.ACCESS_AUDIENCE,
            refresh_audience=settings.REFRESH_AUDIENCE,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            clock=clock,
        )

    def __repr__(self) -> str:
        # sem chaves
        return f"TokenCodec(algorithm={self.algorithm!r}, issuer={self.issuer!r})"

    @property
    def access_expires_in(self) -> int:
        return int(self.access_ttl.total_seconds())

    def now(self) -> datetime:
        return self._clock()

    # ---------- emissão ----------
    def _base_claims(self, typ: str, audience: str, jti: str, expires_in: int) -> Dict[str, Any]:
        iat = int(self.now().timestamp())
        return {
            "ver": CLAIMS_VERSION,
            "typ": typ,
            "jti": jti,
            "iat": iat,
            "exp": iat + int(expires_in),
            "iss": self.issuer,
            "aud": audience,
        }

    def issue_access_token(
        self, *, user_id: str, role: str, email: str, expires_in: Optional[int] = None
    ) -> str:
        ttl = self.access_expires_in if expires_in is None else expires_in
        payload = self._base_claims("access", self.access_audience, uuid.uuid4().hex, ttl)
        payload.update({"sub": str(user_id), "role": role, "email": email})
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def issue_refresh_secret(self, *, expires_in: Optional[int] = None) -> str:
        ttl = int(self.refresh_ttl.total_seconds()) if expires_in is None else expires_in
        payload = self._base_claims("refresh", self.refresh_audience, secrets.token_urlsafe(32), ttl)
        return jwt.encode(payload, self._refresh_secret_key, algorithm=self.algorithm)

    def refresh_expires_at(self) -> datetime:
        return self.now() + self.refresh_ttl

    # ---------- verificação ----------
    def _decode(self, token: str, key: str, audience: str) -> Optional[Dict[str, Any]]:
        if not isinstance(token, str) or not token:
            return None
        try:
            # exp é checado abaixo contra o relógio injetado
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                audience=audience,
                issuer=self.issuer,
                options={"verify_exp": False},
            )
        except JWTError:
            return None
        if not isinstance(payload, dict):
            return None
        return payload

    def _expired(self, exp: int) -> bool:
        return exp <= int(self.now().timestamp())

    def verify_access_token(self, token: str) -> AccessVerification:
        payload = self._decode(token, self._secret_key, self.access_audience)
        if payload is None:
            return TokenFailure.INVALID
        try:
            claims = AccessTokenClaims.model_validate(payload)
        except ValidationError:
            return TokenFailure.INVALID
        if self._expired(claims.exp):
            return TokenFailure.EXPIRED
        return claims

    def verify_refresh_secret(self, token: str) -> RefreshVerification:
        payload = self._decode(token, self._refresh_secret_key, self.refresh_audience)
        if payload is None:
            return TokenFailure.INVALID
        try:
            claims = RefreshTokenClaims.model_validate(payload)
        except ValidationError:
            return TokenFailure.INVALID
        if self._expired(claims.exp):
            return TokenFailure.EXPIRED
        return claims
