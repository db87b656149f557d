from typing import Optional

from sqlalchemy import func, select

from app.core.tenant import get_effective_school_id, restrict_to_teacher_classrooms
from app.models.air_quality import AirQuality
from app.models.alert import Alert
from app.models.attendance import Attendance
from app.models.device import Device
from app.models.fingerprint import FingerprintEnrollment
from app.models.school import School
from app.models.student import Student
from app.models.user import User
from app.schemas.enums import AttendanceStatus, DeviceStatus, EnrollmentStatus
from app.services.base_service import BaseService
from app.utils.time import local_day_bounds, utcnow


class DashboardService(BaseService):

    async def _count(self, statement) -> int:
        return (await self.db.execute(statement)).scalar_one()

    async def get_stats(self, user: User, school_id: Optional[int] = None) -> dict:
        effective_school_id = get_effective_school_id(user, school_id)
        classroom_ids = await restrict_to_teacher_classrooms(self.db, user)

        def scoped(statement, model):
            if effective_school_id is not None:
                statement = statement.where(model.school_id == effective_school_id)
            if classroom_ids is not None and hasattr(model, "classroom_id"):
                statement = statement.where(model.classroom_id.in_(classroom_ids))
            return statement

        tz_name = "UTC"
        if effective_school_id is not None:
            school = await self.db.get(School, effective_school_id)
            tz_name = school.timezone if school else "UTC"
        start, end = local_day_bounds(utcnow(), tz_name)

        total_students = await self._count(scoped(select(func.count(Student.id)), Student))
        today = await self.db.execute(
            scoped(
                select(Attendance.status, func.count(func.distinct(Attendance.student_id)))
                .where(Attendance.check_in_time >= start, Attendance.check_in_time < end)
                .group_by(Attendance.status),
                Attendance
            )
        )
        counts = {status: count for status, count in today.all()}
        present = counts.get(AttendanceStatus.PRESENT, 0)
        late = counts.get(AttendanceStatus.LATE, 0)
        absent = max(total_students - present - late, 0)

        total_devices = await self._count(scoped(select(func.count(Device.id)), Device))
        online_devices = await self._count(
            scoped(select(func.count(Device.id)).where(Device.status == DeviceStatus.ONLINE), Device)
        )

        open_alerts = await self._count(
            scoped(select(func.count(Alert.id)).where(Alert.resolved.is_(False)), Alert)
        )
        pending_enrollments = await self._count(
            scoped(
                select(func.count(FingerprintEnrollment.id))
                .where(FingerprintEnrollment.status.in_(EnrollmentStatus.active())),
                FingerprintEnrollment
            )
        )
        latest_air = await self.db.execute(
            scoped(select(AirQuality), AirQuality)
            .order_by(AirQuality.timestamp.desc(), AirQuality.id.desc())
            .limit(1)
        )

        return {
            "attendance": {
                "total_students": total_students,
                "present": present,
                "late": late,
                "absent": absent,
                "attendance_rate": round((present + late) / total_students * 100, 1) if total_students else 0.0,
            },
            "devices": {
                "total": total_devices,
                "online": online_devices,
                "offline": total_devices - online_devices,
            },
            "open_alerts": open_alerts,
            "pending_enrollments": pending_enrollments,
            "latest_air_quality": latest_air.scalar_one_or_none(),
        }
