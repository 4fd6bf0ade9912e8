# studydesk/db/bootstrap.py
import os

from alembic import command
from alembic.config import Config

from studydesk.core.config import get_settings
from studydesk.db.init_db import init_db
from studydesk.db.session import SessionLocal

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def alembic_config(database_url: str) -> Config:
    # Aponta explicitamente para alembic.ini e migrations/
    cfg = Config(os.path.join(BASE_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(BASE_DIR, "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def run_migrations_and_seed() -> None:
    settings = get_settings()
    command.upgrade(alembic_config(settings.DATABASE_URL), "head")

    with SessionLocal() as db:
        init_db(db, settings)
