from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone

# precisa vir antes de qualquer import de studydesk: engine e settings são criados no import
_TMP = tempfile.mkdtemp(prefix="studydesk_test_")
os.environ["DATA_DIR"] = _TMP
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'app.db')}"
os.environ["JWT_SECRET"] = "test-access-secret-0123456789abcdef"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "0"
os.environ["REFRESH_TOKEN_POLICY"] = "single_use"
os.environ.pop("SEED_ADMIN_EMAIL", None)
os.environ.pop("SEED_ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from studydesk.api import deps
from studydesk.core.config import Settings, get_settings
from studydesk.core.security import hash_password
from studydesk.core.tokens import TokenCodec
from studydesk.crud.refresh_token import SessionStore
from studydesk.crud.user import CRUDUser
from studydesk.db.base import Base
from studydesk.db.session import build_engine
from studydesk.models.user import ROLE_ADMIN, ROLE_STUDENT
from studydesk.services.sessions import SessionManager

PASSWORD = "correct-horse-battery"
UNREACHABLE_DB_URL = "sqlite:////nonexistent-studydesk-dir/sub/unreachable.db"


class FrozenClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'sessions.db'}", timeout=2)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def unreachable_db():
    eng = build_engine(UNREACHABLE_DB_URL, timeout=1)
    s = sessionmaker(autocommit=False, autoflush=False, bind=eng)()
    try:
        yield s
    finally:
        s.close()
        eng.dispose()


@pytest.fixture
def codec(settings, clock) -> TokenCodec:
    return TokenCodec.from_settings(settings, clock=clock)


@pytest.fixture
def store(db, clock) -> SessionStore:
    return SessionStore(db, clock=clock)


@pytest.fixture
def manager(db, codec, settings, clock) -> SessionManager:
    return SessionManager(db, codec, settings, clock=clock)


@pytest.fixture
def make_user(db):
    def _make(email: str = "ana@example.com", password: str = PASSWORD, name: str = "Ana", role: str = ROLE_STUDENT):
        users = CRUDUser(db)
        user = users.create(
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=role,
        )
        users.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", name="Admin", role=ROLE_ADMIN)


@pytest.fixture
def client(session_factory, settings, codec, clock):
    from studydesk.main import api

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    api.dependency_overrides[deps.get_db] = _get_db
    api.dependency_overrides[deps.get_settings] = lambda: settings
    api.dependency_overrides[deps.get_token_codec] = lambda: codec
    api.dependency_overrides[deps.get_clock] = lambda: clock
    with TestClient(api) as c:
        yield c
    api.dependency_overrides.clear()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
