# studydesk/core/errors.py
"""
Error taxonomy for the session core.

The persistence layer raises ``StoreUnavailable``; the session manager turns
every failure into an ``AuthFailure`` value, and the HTTP layer wraps that in
``AuthError`` so a single exception handler renders it.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    EMAIL_TAKEN = "EMAIL_TAKEN"


_STATUS = {
    AuthErrorKind.INVALID_CREDENTIALS: 401,
    AuthErrorKind.TOKEN_INVALID: 401,
    AuthErrorKind.TOKEN_EXPIRED: 401,
    AuthErrorKind.STORE_UNAVAILABLE: 503,
    AuthErrorKind.NOT_FOUND: 404,
    AuthErrorKind.EMAIL_TAKEN: 409,
}

# expirado e inválido compartilham a mesma mensagem pública
_MESSAGES = {
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    AuthErrorKind.TOKEN_INVALID: "Invalid or expired token",
    AuthErrorKind.TOKEN_EXPIRED: "Invalid or expired token",
    AuthErrorKind.STORE_UNAVAILABLE: "Service temporarily unavailable, please retry",
    AuthErrorKind.NOT_FOUND: "User not found",
    AuthErrorKind.EMAIL_TAKEN: "User already exists",
}

RETRY_AFTER_SECONDS = 5


class StoreUnavailable(RuntimeError):
    """The durable store could not be reached within its timeout."""


@dataclass(frozen=True, slots=True)
class AuthFailure:
    kind: AuthErrorKind
    message: str

    @classmethod
    def of(cls, kind: AuthErrorKind, message: str | None = None) -> "AuthFailure":
        return cls(kind=kind, message=message or _MESSAGES[kind])

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def status_code(self) -> int:
        return _STATUS[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind is AuthErrorKind.STORE_UNAVAILABLE

    def headers(self) -> dict[str, str]:
        if self.status_code == 401:
            return {"WWW-Authenticate": "Bearer"}
        if self.retryable:
            return {"Retry-After": str(RETRY_AFTER_SECONDS)}
        return {}


class AuthError(Exception):
    """Raised by route handlers; rendered by the app-level exception handler."""

    def __init__(self, failure: AuthFailure):
        super().__init__(failure.message)
        self.failure = failure
