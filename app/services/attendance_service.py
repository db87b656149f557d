from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.errors import NotFoundError, PermissionDenied, ValidationError
from app.core.logging import logger
from app.core.tenant import (
    get_effective_school_id,
    get_teacher_classroom_ids,
    is_teacher,
    restrict_to_teacher_classrooms,
)
from app.models.attendance import Attendance
from app.models.device import Device
from app.models.school import School
from app.models.student import Student
from app.models.user import User
from app.schemas.attendance.requests import AttendanceCreate, DeviceAttendanceCreate
from app.schemas.enums import AttendanceStatus
from app.services.base_service import BaseService
from app.utils.time import date_bounds, is_on_time, local_day_bounds, utcnow

DEFAULT_RELIABILITY = 98


def dedupe_daily_attendance(records: List[Attendance]) -> List[Attendance]:
    """Keep one record per student, the earliest check-in, preserving order"""
    earliest = {}
    for record in records:
        current = earliest.get(record.student_id)
        if current is None or record.check_in_time < current.check_in_time:
            earliest[record.student_id] = record
    keep = {id(record) for record in earliest.values()}
    return [record for record in records if id(record) in keep]


class AttendanceService(BaseService):

    def _attendance_query(self):
        return select(Attendance).options(
            selectinload(Attendance.student),
            selectinload(Attendance.classroom),
            selectinload(Attendance.device),
        )

    async def _school_timezone(self, school_id: Optional[int]) -> str:
        if school_id is None:
            return "UTC"
        school = await self.db.get(School, school_id)
        return school.timezone if school else "UTC"

    async def get_attendance(self, attendance_id: int) -> Attendance:
        result = await self.db.execute(
            self._attendance_query()
            .where(Attendance.id == attendance_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def list_attendance(
        self,
        user: User,
        day: Optional[date] = None,
        class_name: Optional[str] = None,
        classroom_id: Optional[int] = None,
        school_id: Optional[int] = None
    ) -> List[Attendance]:
        effective_school_id = get_effective_school_id(user, school_id)

        query = self._attendance_query()
        if effective_school_id is not None:
            query = query.where(Attendance.school_id == effective_school_id)

        if day is not None:
            start, end = date_bounds(day, await self._school_timezone(effective_school_id))
            query = query.where(and_(Attendance.check_in_time >= start, Attendance.check_in_time < end))

        if class_name and class_name != "all":
            query = query.join(Attendance.student).where(Student.class_name == class_name)

        classroom_ids = await restrict_to_teacher_classrooms(self.db, user, classroom_id)
        if classroom_ids is not None:
            if not classroom_ids:
                return []
            query = query.where(Attendance.classroom_id.in_(classroom_ids))

        result = await self.db.execute(
            query.order_by(Attendance.check_in_time.desc(), Attendance.id.desc())
        )
        records = list(result.scalars().all())
        return dedupe_daily_attendance(records) if day is not None else records

    async def _record(
        self,
        student: Student,
        device: Optional[Device],
        fingerprint_match: bool,
        reliability: Optional[float],
        teacher_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Tuple[Attendance, bool]:
        """Create today's check-in for the student unless one already exists"""
        now = now or utcnow()
        tz_name = await self._school_timezone(student.school_id)
        start, end = local_day_bounds(now, tz_name)

        existing = await self.db.execute(
            self._attendance_query()
            .where(
                and_(
                    Attendance.student_id == student.id,
                    Attendance.check_in_time >= start,
                    Attendance.check_in_time < end
                )
            )
            .order_by(Attendance.check_in_time.asc())
            .limit(1)
        )
        attendance = existing.scalar_one_or_none()
        if attendance is not None:
            return attendance, False

        status = (
            AttendanceStatus.PRESENT
            if is_on_time(now, settings.late_cutoff, tz_name)
            else AttendanceStatus.LATE
        )
        attendance = Attendance(
            school_id=student.school_id,
            student_id=student.id,
            classroom_id=student.classroom_id,
            device_id=device.id if device else None,
            teacher_id=teacher_id,
            check_in_time=now,
            status=status,
            fingerprint_match=fingerprint_match,
            reliability=reliability if reliability is not None else DEFAULT_RELIABILITY,
        )
        self.db.add(attendance)
        await self.db.commit()
        logger.info(f"Attendance recorded for student {student.student_id}: {status.value}")
        return await self.get_attendance(attendance.id), True

    async def record_attendance(self, user: User, data: AttendanceCreate) -> Tuple[Attendance, bool]:
        result = await self.db.execute(select(Student).where(Student.student_id == data.student_id))
        student = result.scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student not found")

        if not user.is_platform_admin and student.school_id != get_effective_school_id(user):
            raise PermissionDenied("Student belongs to another school")

        if is_teacher(user):
            if student.classroom_id not in await get_teacher_classroom_ids(self.db, user.id):
                raise PermissionDenied("Teacher is not assigned to this classroom")

        device = await self.db.get(Device, data.device_id)
        if device is None:
            raise NotFoundError("Device not found")
        if device.school_id != student.school_id:
            raise ValidationError("Device is not mapped to the same school as the student")

        return await self._record(
            student,
            device,
            data.fingerprint_match,
            data.reliability,
            teacher_id=user.id if is_teacher(user) else None,
        )

    async def record_device_attendance(
        self,
        device: Device,
        data: DeviceAttendanceCreate
    ) -> Tuple[Attendance, bool]:
        if data.student_id:
            query = select(Student).where(Student.student_id == data.student_id)
        else:
            query = select(Student).where(
                and_(
                    Student.school_id == device.school_id,
                    Student.fingerprint_data == str(data.fingerprint_id)
                )
            )
        student = (await self.db.execute(query.limit(1))).scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student not found")
        if student.school_id != device.school_id:
            raise ValidationError("Device is not mapped to the same school as the student")

        return await self._record(student, device, data.fingerprint_match, data.reliability)

    async def get_stats(
        self,
        user: User,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        school_id: Optional[int] = None
    ) -> dict:
        effective_school_id = get_effective_school_id(user, school_id)

        conditions = []
        if effective_school_id is not None:
            conditions.append(Attendance.school_id == effective_school_id)
        if start is not None and end is not None:
            conditions.append(Attendance.check_in_time >= start)
            conditions.append(Attendance.check_in_time <= end)

        classroom_ids = await restrict_to_teacher_classrooms(self.db, user)
        if classroom_ids is not None:
            if not classroom_ids:
                return {"total": 0, "present": 0, "absent": 0, "late": 0, "present_rate": 0.0}
            conditions.append(Attendance.classroom_id.in_(classroom_ids))

        result = await self.db.execute(
            select(Attendance.status, func.count(Attendance.id))
            .where(*conditions)
            .group_by(Attendance.status)
        )
        counts = {status: count for status, count in result.all()}

        present = counts.get(AttendanceStatus.PRESENT, 0)
        late = counts.get(AttendanceStatus.LATE, 0)
        absent = counts.get(AttendanceStatus.ABSENT, 0)
        total = present + late + absent
        return {
            "total": total,
            "present": present,
            "absent": absent,
            "late": late,
            "present_rate": round(present / total * 100, 1) if total else 0.0,
        }

    async def get_student_history(self, user: User, student_id: str, limit: int = 10) -> List[Attendance]:
        result = await self.db.execute(select(Student).where(Student.student_id == student_id))
        student = result.scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student not found")

        if not user.is_platform_admin and student.school_id != get_effective_school_id(user):
            raise PermissionDenied("Student belongs to another school")
        if is_teacher(user) and student.classroom_id not in await get_teacher_classroom_ids(self.db, user.id):
            raise PermissionDenied("Teacher is not assigned to this classroom")

        records = await self.db.execute(
            self._attendance_query()
            .where(Attendance.student_id == student.id)
            .order_by(Attendance.check_in_time.desc())
            .limit(limit)
        )
        return list(records.scalars().all())
