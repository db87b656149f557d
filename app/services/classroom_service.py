from typing import List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.orm import selectinload

from app.core.errors import NotFoundError, PermissionDenied, ValidationError
from app.core.logging import logger
from app.core.tenant import (
    get_effective_school_id,
    get_teacher_classroom_ids,
    is_teacher,
    require_school_id,
)
from app.models.classroom import Classroom, TeacherClassAssignment
from app.models.device import Device
from app.models.student import Student
from app.models.user import User
from app.schemas.classroom.requests import ClassroomCreate, ClassroomUpdate
from app.schemas.enums import UserRoleEnum
from app.services.base_service import BaseService


class ClassroomService(BaseService):

    def _classroom_query(self):
        return select(Classroom).options(
            selectinload(Classroom.teacher_assignments).selectinload(TeacherClassAssignment.teacher)
        )

    async def _counts(self, model, classroom_ids: List[int]) -> dict:
        if not classroom_ids:
            return {}
        result = await self.db.execute(
            select(model.classroom_id, func.count(model.id))
            .where(model.classroom_id.in_(classroom_ids))
            .group_by(model.classroom_id)
        )
        return {classroom_id: count for classroom_id, count in result.all()}

    def _serialize(self, classroom: Classroom, students: dict, devices: dict) -> dict:
        return {
            "id": classroom.id,
            "school_id": classroom.school_id,
            "name": classroom.name,
            "grade": classroom.grade,
            "section": classroom.section,
            "capacity": classroom.capacity,
            "created_at": classroom.created_at,
            "student_count": students.get(classroom.id, 0),
            "device_count": devices.get(classroom.id, 0),
            "teachers": [assignment.teacher for assignment in classroom.teacher_assignments],
        }

    async def list_classrooms(self, user: User, school_id: Optional[int] = None) -> List[dict]:
        effective_school_id = get_effective_school_id(user, school_id)

        query = self._classroom_query()
        if effective_school_id is not None:
            query = query.where(Classroom.school_id == effective_school_id)

        if is_teacher(user):
            assigned = await get_teacher_classroom_ids(self.db, user.id)
            if not assigned:
                return []
            query = query.where(Classroom.id.in_(assigned))

        result = await self.db.execute(query.order_by(Classroom.name, Classroom.id))
        classrooms = list(result.scalars().all())

        ids = [classroom.id for classroom in classrooms]
        students = await self._counts(Student, ids)
        devices = await self._counts(Device, ids)
        return [self._serialize(classroom, students, devices) for classroom in classrooms]

    async def get_classroom(self, user: User, classroom_id: int) -> Classroom:
        result = await self.db.execute(
            self._classroom_query()
            .options(selectinload(Classroom.students), selectinload(Classroom.devices))
            .where(Classroom.id == classroom_id)
            .execution_options(populate_existing=True)
        )
        classroom = result.scalar_one_or_none()
        if classroom is None:
            raise NotFoundError("Classroom not found")

        if not user.is_platform_admin and classroom.school_id != get_effective_school_id(user):
            raise PermissionDenied("Classroom belongs to another school")

        if is_teacher(user) and classroom.id not in await get_teacher_classroom_ids(self.db, user.id):
            raise PermissionDenied("Teacher is not assigned to this classroom")

        return classroom

    async def get_classroom_detail(self, user: User, classroom_id: int) -> dict:
        classroom = await self.get_classroom(user, classroom_id)
        detail = self._serialize(
            classroom,
            {classroom.id: len(classroom.students)},
            {classroom.id: len(classroom.devices)},
        )
        detail["students"] = sorted(classroom.students, key=lambda s: s.name)
        detail["devices"] = sorted(classroom.devices, key=lambda d: d.name)
        return detail

    async def create_classroom(self, user: User, data: ClassroomCreate) -> dict:
        school_id = require_school_id(user, data.school_id)

        classroom = Classroom(
            school_id=school_id,
            name=data.name.strip(),
            grade=data.grade,
            section=data.section,
            capacity=data.capacity,
        )
        self.db.add(classroom)
        await self.db.commit()
        logger.info(f"Classroom {classroom.id} created in school {school_id}")
        return await self.get_classroom_detail(user, classroom.id)

    async def update_classroom(self, user: User, classroom_id: int, data: ClassroomUpdate) -> dict:
        classroom = await self.get_classroom(user, classroom_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(classroom, field, value)
        await self.db.commit()
        return await self.get_classroom_detail(user, classroom.id)

    async def delete_classroom(self, user: User, classroom_id: int) -> None:
        classroom = await self.get_classroom(user, classroom_id)
        await self.db.delete(classroom)
        await self.db.commit()
        logger.info(f"Classroom {classroom_id} deleted by user {user.id}")

    async def list_teachers(self, user: User, school_id: Optional[int] = None) -> List[User]:
        effective_school_id = get_effective_school_id(user, school_id)
        query = select(User).where(User.role == UserRoleEnum.TEACHER)
        if effective_school_id is not None:
            query = query.where(User.school_id == effective_school_id)
        result = await self.db.execute(query.order_by(User.full_name))
        return list(result.scalars().all())

    async def assign_teacher(self, user: User, classroom_id: int, teacher_id: int) -> dict:
        classroom = await self.get_classroom(user, classroom_id)

        teacher = await self.db.get(User, teacher_id)
        if teacher is None or teacher.role != UserRoleEnum.TEACHER:
            raise ValidationError("Teacher not found")
        if teacher.school_id != classroom.school_id:
            raise ValidationError("Teacher belongs to another school")

        existing = await self.db.execute(
            select(TeacherClassAssignment).where(
                and_(
                    TeacherClassAssignment.teacher_id == teacher_id,
                    TeacherClassAssignment.classroom_id == classroom_id
                )
            )
        )
        if existing.scalar_one_or_none() is None:
            self.db.add(TeacherClassAssignment(
                teacher_id=teacher_id,
                classroom_id=classroom_id,
                school_id=classroom.school_id,
            ))
            await self.db.commit()
            logger.info(f"Teacher {teacher_id} assigned to classroom {classroom_id}")

        return await self.get_classroom_detail(user, classroom_id)

    async def unassign_teacher(self, user: User, classroom_id: int, teacher_id: int) -> None:
        await self.get_classroom(user, classroom_id)
        result = await self.db.execute(
            select(TeacherClassAssignment).where(
                and_(
                    TeacherClassAssignment.teacher_id == teacher_id,
                    TeacherClassAssignment.classroom_id == classroom_id
                )
            )
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise NotFoundError("Teacher is not assigned to this classroom")
        await self.db.delete(assignment)
        await self.db.commit()
