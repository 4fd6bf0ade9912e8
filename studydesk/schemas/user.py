# studydesk/schemas/user.py
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from studydesk.core.security import MAX_PASSWORD_BYTES

RoleName = Literal["student", "admin"]


class CamelModel(BaseModel):
    # o front espera camelCase (accessToken, createdAt, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class UserProfile(CamelModel):
    """Public profile returned alongside tokens; never carries the password hash."""

    id: str
    email: str
    name: str
    role: RoleName
    avatar: str
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class UserOut(CamelModel):
    user: UserProfile
