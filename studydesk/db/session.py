# studydesk/db/session.py
from __future__ import annotations

from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from studydesk.core.config import get_settings


def _connect_args(url: str, timeout: int) -> Dict[str, Any]:
    # todo acesso ao banco precisa ter timeout: conexão e statement
    if url.startswith("sqlite"):
        return {"timeout": timeout, "check_same_thread": False}
    if url.startswith("postgresql"):
        return {"connect_timeout": timeout, "options": f"-c statement_timeout={timeout * 1000}"}
    return {}


def build_engine(url: str, timeout: int) -> Engine:
    kwargs: Dict[str, Any] = {"pool_pre_ping": True, "connect_args": _connect_args(url, timeout)}
    if not url.startswith("sqlite"):
        kwargs["pool_timeout"] = timeout
    return create_engine(url, **kwargs)


_settings = get_settings()
engine = build_engine(_settings.DATABASE_URL, _settings.DB_TIMEOUT_SECONDS)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
