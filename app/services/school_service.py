from typing import List

from sqlalchemy import func, select

from app.core.errors import NotFoundError, ValidationError
from app.core.logging import logger
from app.models.device import Device
from app.models.school import School
from app.models.student import Student
from app.models.user import User
from app.schemas.school.requests import SchoolCreate, SchoolUpdate
from app.services.base_service import BaseService


class SchoolService(BaseService):

    async def get_school(self, school_id: int) -> School:
        school = await self.db.get(School, school_id)
        if school is None:
            raise NotFoundError("School not found")
        return school

    async def _count_by_school(self, model) -> dict:
        result = await self.db.execute(
            select(model.school_id, func.count(model.id)).group_by(model.school_id)
        )
        return {school_id: count for school_id, count in result.all()}

    async def list_schools(self) -> List[dict]:
        result = await self.db.execute(select(School).order_by(School.name))
        schools = result.scalars().all()

        users = await self._count_by_school(User)
        devices = await self._count_by_school(Device)
        students = await self._count_by_school(Student)

        return [
            {
                "school": school,
                "user_count": users.get(school.id, 0),
                "device_count": devices.get(school.id, 0),
                "student_count": students.get(school.id, 0),
            }
            for school in schools
        ]

    async def create_school(self, actor: User, data: SchoolCreate) -> School:
        existing = await self.db.execute(select(School).where(School.code == data.code))
        if existing.scalar_one_or_none() is not None:
            raise ValidationError("School code already exists")

        async with self.transaction():
            school = School(**data.model_dump())
            self.db.add(school)
            await self.db.flush()
            self.log_action("SCHOOL_CREATED", school_id=school.id, actor=actor, details={"code": school.code})

        logger.info(f"School {school.code} created by user {actor.id}")
        await self.db.refresh(school)
        return school

    async def update_school(self, actor: User, school_id: int, data: SchoolUpdate) -> School:
        school = await self.get_school(school_id)
        changes = data.model_dump(exclude_unset=True)

        async with self.transaction():
            for field, value in changes.items():
                setattr(school, field, value)
            self.log_action(
                "SCHOOL_UPDATED",
                school_id=school.id,
                actor=actor,
                details={"fields": sorted(changes)}
            )

        await self.db.refresh(school)
        return school
