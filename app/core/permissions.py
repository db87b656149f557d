# app/core/permissions.py
from typing import Iterable

from fastapi import Depends

from app.core.dependencies import get_current_active_user
from app.core.errors import PermissionDenied
from app.core.logging import logger
from app.models.user import User
from app.schemas.enums import UserRoleEnum


class RoleChecker:
    """Allow-list role check usable as a FastAPI dependency"""

    def __init__(self, allowed_roles: Iterable[UserRoleEnum]):
        self.allowed_roles = set(allowed_roles)

    async def __call__(
        self,
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        """Makes RoleChecker callable as a FastAPI dependency"""
        if current_user.role not in self.allowed_roles:
            logger.warning(
                f"Permission denied: User {current_user.id} with role {current_user.role} "
                f"attempted to access resource requiring roles "
                f"{sorted(role.value for role in self.allowed_roles)}"
            )
            raise PermissionDenied("Insufficient role permissions")
        return current_user


# Factory functions for common role checks
def require_platform_admin():
    return RoleChecker([UserRoleEnum.PLATFORM_ADMIN])

def require_school_admin():
    return RoleChecker([UserRoleEnum.PLATFORM_ADMIN, UserRoleEnum.SCHOOL_ADMIN])

def require_enrollment_roles():
    return RoleChecker([
        UserRoleEnum.PLATFORM_ADMIN,
        UserRoleEnum.SCHOOL_ADMIN,
        UserRoleEnum.TEACHER
    ])

def require_attendance_roles():
    return RoleChecker([
        UserRoleEnum.PLATFORM_ADMIN,
        UserRoleEnum.SCHOOL_ADMIN,
        UserRoleEnum.STAFF,
        UserRoleEnum.TEACHER
    ])

def require_sensor_roles():
    return RoleChecker([
        UserRoleEnum.PLATFORM_ADMIN,
        UserRoleEnum.SCHOOL_ADMIN,
        UserRoleEnum.STAFF
    ])
