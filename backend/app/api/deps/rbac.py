from __future__ import annotations

from collections.abc import Iterable

from fastapi import Depends

from app.api.routes.auth import get_current_user
from app.domain.errors import PermissionDenied
from app.models import ADMIN_ROLES, Profile, UserRole

ADMIN_REQUIRED_MESSAGE = "Unauthorized - Admin access required"


def enforce_roles(
    user: Profile,
    allowed: Iterable[UserRole],
    *,
    message: str = "Not authorized for this action",
) -> None:
    allowed_set = set(allowed)
    if user.role not in allowed_set:
        raise PermissionDenied(message, details={"role": user.role.value if user.role else None})


def require_roles(*allowed: UserRole, message: str = "Not authorized for this action"):
    async def _dependency(current_user: Profile = Depends(get_current_user)) -> Profile:
        enforce_roles(current_user, allowed, message=message)
        return current_user

    return _dependency


require_admin = require_roles(*ADMIN_ROLES, message=ADMIN_REQUIRED_MESSAGE)
