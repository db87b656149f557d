from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

from app.core.errors import NotFoundError, PermissionDenied, ValidationError
from app.core.logging import logger
from app.core.tenant import (
    ensure_classroom_in_school,
    get_effective_school_id,
    get_teacher_classroom_ids,
    is_teacher,
    require_school_id,
    restrict_to_teacher_classrooms,
)
from app.models.attendance import Attendance
from app.models.student import Student
from app.models.user import User
from app.schemas.student.requests import StudentCreate, StudentUpdate
from app.services.base_service import BaseService


class StudentService(BaseService):

    async def get_by_student_id(self, student_id: str) -> Optional[Student]:
        result = await self.db.execute(select(Student).where(Student.student_id == student_id))
        return result.scalar_one_or_none()

    async def list_students(
        self,
        user: User,
        class_name: Optional[str] = None,
        classroom_id: Optional[int] = None,
        search: Optional[str] = None,
        school_id: Optional[int] = None
    ) -> List[Student]:
        effective_school_id = get_effective_school_id(user, school_id)

        query = select(Student)
        if effective_school_id is not None:
            query = query.where(Student.school_id == effective_school_id)
        if class_name and class_name != "all":
            query = query.where(Student.class_name == class_name)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(Student.name.ilike(pattern), Student.student_id.ilike(pattern)))

        classroom_ids = await restrict_to_teacher_classrooms(self.db, user, classroom_id)
        if classroom_ids is not None:
            if not classroom_ids:
                return []
            query = query.where(Student.classroom_id.in_(classroom_ids))

        result = await self.db.execute(query.order_by(Student.name, Student.id))
        return list(result.scalars().all())

    async def get_student(self, user: User, student_pk: int) -> Student:
        result = await self.db.execute(
            select(Student)
            .options(selectinload(Student.classroom))
            .where(Student.id == student_pk)
            .execution_options(populate_existing=True)
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student not found")

        if not user.is_platform_admin and student.school_id != get_effective_school_id(user):
            raise PermissionDenied("Student belongs to another school")

        if is_teacher(user) and student.classroom_id not in await get_teacher_classroom_ids(self.db, user.id):
            raise PermissionDenied("Teacher is not assigned to this classroom")

        return student

    async def get_student_detail(self, user: User, student_pk: int) -> dict:
        student = await self.get_student(user, student_pk)
        attendance_count = (await self.db.execute(
            select(func.count(Attendance.id)).where(Attendance.student_id == student.id)
        )).scalar_one()
        return {"student": student, "attendance_count": attendance_count}

    async def create_student(self, user: User, data: StudentCreate) -> Student:
        school_id = require_school_id(user, data.school_id)

        if await self.get_by_student_id(data.student_id) is not None:
            raise ValidationError("Student ID already exists")

        classroom = await ensure_classroom_in_school(self.db, data.classroom_id, school_id)

        student = Student(
            school_id=school_id,
            student_id=data.student_id.strip(),
            name=data.name.strip(),
            class_name=data.class_name or (classroom.name if classroom else None),
            classroom_id=data.classroom_id,
            fingerprint_data=data.fingerprint_data,
        )
        self.db.add(student)
        await self.db.commit()
        logger.info(f"Student {student.student_id} created in school {school_id}")
        return await self.get_student(user, student.id)

    async def update_student(self, user: User, student_pk: int, data: StudentUpdate) -> Student:
        student = await self.get_student(user, student_pk)
        changes = data.model_dump(exclude_unset=True)

        new_code = changes.get("student_id")
        if new_code and new_code != student.student_id:
            if await self.get_by_student_id(new_code) is not None:
                raise ValidationError("Student ID already exists")

        if "classroom_id" in changes:
            await ensure_classroom_in_school(self.db, changes["classroom_id"], student.school_id)

        for field, value in changes.items():
            setattr(student, field, value)
        await self.db.commit()
        return await self.get_student(user, student.id)

    async def delete_student(self, user: User, student_pk: int) -> None:
        student = await self.get_student(user, student_pk)
        await self.db.delete(student)
        await self.db.commit()
        logger.info(f"Student {student.student_id} deleted by user {user.id}")
