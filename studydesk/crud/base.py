# studydesk/crud/base.py
from __future__ import annotations

from contextlib import contextmanager, suppress
from datetime import datetime, timezone
from typing import Any, Generic, Iterator, Optional, Type, TypeVar

import structlog
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from studydesk.core.errors import StoreUnavailable
from studydesk.db.base import Base

log = structlog.get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)

# falhas de infraestrutura (conexão/timeout), não de dados
_UNAVAILABLE = (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.TimeoutError)


def _is_unavailable(err: BaseException) -> bool:
    if isinstance(err, _UNAVAILABLE):
        return True
    return isinstance(err, sa_exc.DBAPIError) and bool(err.connection_invalidated)


@contextmanager
def store_guard(db: Session, op: str = "query") -> Iterator[None]:
    """Translate connectivity/timeout failures into StoreUnavailable."""
    try:
        yield
    except sa_exc.SQLAlchemyError as err:
        if not _is_unavailable(err):
            raise
        with suppress(sa_exc.SQLAlchemyError):
            db.rollback()
        log.error("session_store_unavailable", op=op, error=type(err).__name__)
        raise StoreUnavailable(f"store unavailable during {op}") from err


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite devolve datetimes ingênuos; tudo é gravado em UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CRUDBase(Generic[ModelType]):
    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def get(self, id: Any) -> Optional[ModelType]:
        with store_guard(self.db, f"get {self.model.__tablename__}"):
            return self.db.get(self.model, id)

    def add(self, obj: ModelType) -> ModelType:
        with store_guard(self.db, f"insert {self.model.__tablename__}"):
            self.db.add(obj)
            self.db.flush()
        return obj

    def commit(self) -> None:
        with store_guard(self.db, "commit"):
            self.db.commit()

    def rollback(self) -> None:
        with store_guard(self.db, "rollback"):
            self.db.rollback()
