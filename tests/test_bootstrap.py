from __future__ import annotations

from alembic import command
from sqlalchemy import create_engine, inspect

from studydesk.core.security import verify_password
from studydesk.crud.user import CRUDUser
from studydesk.db.bootstrap import alembic_config
from studydesk.db.init_db import init_db


def test_migrations_create_schema(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    command.upgrade(alembic_config(url), "head")

    eng = create_engine(url)
    try:
        insp = inspect(eng)
        assert {"users", "refresh_tokens"} <= set(insp.get_table_names())
        cols = {c["name"] for c in insp.get_columns("refresh_tokens")}
        assert cols == {"id", "user_id", "token_hash", "expires_at", "created_at"}
    finally:
        eng.dispose()


def test_seed_admin_is_idempotent(db, settings) -> None:
    seeded = settings.model_copy(update={"SEED_ADMIN_EMAIL": "Root@Example.com", "SEED_ADMIN_PASSWORD": "rootpass123"})
    init_db(db, seeded)
    init_db(db, seeded)

    admin = CRUDUser(db).get_by_email("root@example.com")
    assert admin is not None
    assert admin.role == "admin"
    assert verify_password("rootpass123", admin.password_hash)


def test_no_seed_without_credentials(db, settings) -> None:
    init_db(db, settings)
    assert CRUDUser(db).get_by_email("root@example.com") is None
