# registra todas as tabelas no metadata (alembic/create_all)
from studydesk.models.user import User  # noqa: F401
from studydesk.models.refresh_token import RefreshToken  # noqa: F401

__all__ = ["User", "RefreshToken"]
