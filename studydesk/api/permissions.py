# studydesk/api/permissions.py
from enum import Enum
from typing import Callable

from fastapi import Depends, HTTPException, status

from studydesk.api.deps import get_current_principal
from studydesk.services.sessions import Principal


class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


def require_roles(*allowed: Role) -> Callable[[Principal], Principal]:
    """
    Use: Depends(require_roles(Role.ADMIN))
    Collaborator endpoints gate on the role carried by the access token.
    """
    allowed_set = {Role(r).value for r in allowed}

    def _checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed_set:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal

    return _checker
