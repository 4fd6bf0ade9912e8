# studydesk/schemas/token.py
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from studydesk.schemas.user import UserProfile, CamelModel

CLAIMS_VERSION = 1


class _Claims(BaseModel):
    # payload versionado: campo desconhecido ou ausente => token inválido
    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    ver: Literal[1]
    jti: str = Field(min_length=16)
    iat: int
    exp: int
    iss: str
    aud: str


class AccessTokenClaims(_Claims):
    typ: Literal["access"]
    sub: str = Field(min_length=1)
    role: str = Field(min_length=1)
    email: str

    @property
    def user_id(self) -> str:
        return self.sub


class RefreshTokenClaims(_Claims):
    typ: Literal["refresh"]


# ---------- wire ----------

class LoginIn(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)


class RefreshIn(CamelModel):
    refresh_token: str = Field(min_length=1)


class SessionOut(CamelModel):
    user: UserProfile
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


class LogoutOut(CamelModel):
    message: str
    revoked_sessions: int


class RevokeSessionsOut(CamelModel):
    user_id: str
    revoked_sessions: int
