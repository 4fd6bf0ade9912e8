# studydesk/core/config.py
from __future__ import annotations

import os
from functools import lru_cache
from typing import ClassVar, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()  # .env opcional em dev


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _normalize_db_url(url: str) -> str:
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _default_database_url() -> str:
    raw = os.getenv("DATABASE_URL")
    if raw and raw.strip():
        return _normalize_db_url(raw.strip())
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return f"sqlite:///{os.path.join(data_dir, 'studydesk.db')}"


class Settings(BaseModel):
    """Process-wide configuration, read once at startup and never mutated."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    DATABASE_URL: str = Field(default_factory=_default_database_url)
    DB_TIMEOUT_SECONDS: int = Field(default_factory=lambda: int(os.getenv("DB_TIMEOUT_SECONDS", "10")))

    # chaves de assinatura: nunca logar
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("JWT_SECRET", "CHANGE_ME_SUPER_SECRET"))
    REFRESH_SECRET_KEY: str = Field(default_factory=lambda: os.getenv("JWT_REFRESH_SECRET", "CHANGE_ME_ANOTHER_SECRET"))
    JWT_ALGORITHM: str = Field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    JWT_ISSUER: str = Field(default_factory=lambda: os.getenv("JWT_ISSUER", "studydesk"))
    ACCESS_AUDIENCE: str = "studydesk-users"
    REFRESH_AUDIENCE: str = "studydesk-refresh"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")))
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default_factory=lambda: int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")))
    # "reuse": o refresh resgatado continua válido até expirar
    # "single_use": cada refresh armazenado é consumido atomicamente
    REFRESH_TOKEN_POLICY: Literal["reuse", "single_use"] = Field(
        default_factory=lambda: os.getenv("REFRESH_TOKEN_POLICY", "single_use")
    )

    BCRYPT_ROUNDS: int = Field(default_factory=lambda: int(os.getenv("BCRYPT_ROUNDS", "12")), ge=4, le=31)

    DEFAULT_AVATAR_URL: str = Field(
        default_factory=lambda: os.getenv(
            "DEFAULT_AVATAR_URL",
            "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=100&h=100&fit=crop&crop=face",
        )
    )

    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default_factory=lambda: _env_bool("RUN_MIGRATIONS_ON_STARTUP", True))
    SEED_ADMIN_EMAIL: str | None = Field(default_factory=lambda: os.getenv("SEED_ADMIN_EMAIL") or None)
    SEED_ADMIN_PASSWORD: str | None = Field(default_factory=lambda: os.getenv("SEED_ADMIN_PASSWORD") or None)

    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    LOG_JSON: bool = Field(default_factory=lambda: _env_bool("LOG_JSON", False))
    CORS_ORIGINS: str = Field(default_factory=lambda: os.getenv("CORS_ORIGINS", "*"))

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
