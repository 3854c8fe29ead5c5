"""Platform roles and the endpoint guard that enforces them.

Platform Admin manages tiers and pricing and sees every league. Hosts create
and pay for leagues. Members join them. Each role can do everything the roles
below it can.
"""
from enum import Enum
from functools import wraps
from typing import Callable, Iterable, Optional

import structlog
from fastapi import HTTPException, status

logger = structlog.get_logger(__name__)


class Role(str, Enum):
    PLATFORM_ADMIN = "Platform Admin"
    HOST = "Host"
    MEMBER = "Member"


ROLE_RANK = {Role.MEMBER: 1, Role.HOST: 2, Role.PLATFORM_ADMIN: 3}

# Roles each role may act as
ROLE_HIERARCHY = {
    role: [other for other, rank in ROLE_RANK.items() if rank <= ROLE_RANK[role]] for role in Role
}


def check_role_hierarchy(user_role: Optional[str], required_roles: Iterable[Role]) -> bool:
    """True when ``user_role`` is at or above the lowest of ``required_roles``."""
    try:
        role = Role(user_role)
    except ValueError:
        return False
    return any(required in ROLE_HIERARCHY[role] for required in required_roles)


def is_platform_admin(current_user: dict | None) -> bool:
    return bool(current_user) and current_user.get("role") == Role.PLATFORM_ADMIN.value


def require_roles(*required_roles: Role):
    """
    Guard an endpoint that receives ``current_user`` from ``get_current_user``.

    Raises 401 when no user was resolved and 403 when the user's role is
    too low::

        @router.post("/admin/tiers")
        @require_roles(Role.PLATFORM_ADMIN)
        async def create_tier(..., current_user: dict = Depends(get_current_user)):
            ...
    """
    allowed = ", ".join(role.value for role in required_roles)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            current_user = kwargs.get("current_user")
            if not current_user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authentication required",
                )

            if not check_role_hierarchy(current_user.get("role"), required_roles):
                logger.warning(
                    "role_check_denied",
                    user_id=current_user.get("sub"),
                    user_role=current_user.get("role"),
                    required=allowed,
                    endpoint=func.__name__,
                )
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Insufficient permissions. Required roles: {allowed}",
                )

            return await func(*args, **kwargs)

        return wrapper

    return decorator
