from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from app.core.errors import NotFoundError, ValidationError
from app.core.logging import logger
from app.models.device import Device
from app.models.school import School
from app.models.student import Student
from app.models.system_log import SystemLog
from app.models.user import User
from app.schemas.enums import DeviceStatus, UserRoleEnum
from app.schemas.user.requests import UserRoleUpdate
from app.services.base_service import BaseService


class AdminService(BaseService):
    """Platform-wide operations reserved for platform admins"""

    async def _count(self, statement) -> int:
        return (await self.db.execute(statement)).scalar_one()

    async def overview(self) -> dict:
        return {
            "schools": await self._count(select(func.count(School.id))),
            "users": await self._count(select(func.count(User.id))),
            "devices": await self._count(select(func.count(Device.id))),
            "online_devices": await self._count(
                select(func.count(Device.id)).where(Device.status == DeviceStatus.ONLINE)
            ),
            "students": await self._count(select(func.count(Student.id))),
            "recent_logs": await self.list_logs(limit=20),
        }

    async def list_users(self) -> List[User]:
        result = await self.db.execute(
            select(User).options(selectinload(User.school)).order_by(User.created_at.desc(), User.id.desc())
        )
        return list(result.scalars().all())

    async def update_user_role(self, actor: User, user_id: int, data: UserRoleUpdate) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        school_id = data.school_id if data.school_id is not None else user.school_id
        if data.role != UserRoleEnum.PLATFORM_ADMIN:
            if school_id is None:
                raise ValidationError("School is required for this role")
            if await self.db.get(School, school_id) is None:
                raise NotFoundError("School not found")

        async with self.transaction():
            user.role = data.role
            user.school_id = school_id
            self.log_action(
                "USER_ROLE_UPDATED",
                school_id=school_id,
                actor=actor,
                details={"user_id": user.id, "role": data.role.value}
            )

        logger.info(f"User {user.id} role set to {data.role.value} by {actor.id}")
        result = await self.db.execute(
            select(User)
            .options(selectinload(User.school))
            .where(User.id == user.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def delete_user(self, actor: User, user_id: int) -> None:
        if actor.id == user_id:
            raise ValidationError("You cannot delete your own account")

        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        async with self.transaction():
            await self.db.delete(user)
            self.log_action("USER_DELETED", school_id=user.school_id, actor=actor, details={"user_id": user_id})

    async def list_logs(self, limit: int = 100) -> List[SystemLog]:
        result = await self.db.execute(
            select(SystemLog).order_by(SystemLog.created_at.desc(), SystemLog.id.desc()).limit(limit)
        )
        return list(result.scalars().all())
