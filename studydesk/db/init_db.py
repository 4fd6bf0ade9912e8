# studydesk/db/init_db.py
import structlog
from sqlalchemy.orm import Session

from studydesk.core.config import Settings
from studydesk.core.security import hash_password
from studydesk.crud.user import CRUDUser
from studydesk.models.user import ROLE_ADMIN

log = structlog.get_logger(__name__)


def init_db(db: Session, settings: Settings) -> None:
    # seed opcional: só cria o admin se SEED_ADMIN_EMAIL/PASSWORD estiverem definidos
    if not settings.SEED_ADMIN_EMAIL or not settings.SEED_ADMIN_PASSWORD:
        return
    users = CRUDUser(db)
    if users.get_by_email(settings.SEED_ADMIN_EMAIL) is not None:
        return
    admin = users.create(
        email=settings.SEED_ADMIN_EMAIL,
        password_hash=hash_password(settings.SEED_ADMIN_PASSWORD),
        name="Admin",
        role=ROLE_ADMIN,
        avatar_url=settings.DEFAULT_AVATAR_URL,
    )
    users.commit()
    log.info("admin_seeded", user_id=admin.id)
