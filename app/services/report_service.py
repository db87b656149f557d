from collections import OrderedDict
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import selectinload

from app.core.errors import ValidationError
from app.core.tenant import get_effective_school_id, restrict_to_teacher_classrooms
from app.models.attendance import Attendance
from app.models.school import School
from app.models.user import User
from app.schemas.enums import AttendanceStatus
from app.services.base_service import BaseService
from app.utils.time import date_bounds

DEFAULT_REPORT_DAYS = 7


class ReportService(BaseService):

    async def attendance_report(
        self,
        user: User,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        classroom_id: Optional[int] = None,
        school_id: Optional[int] = None
    ) -> dict:
        end_date = end_date or date.today()
        start_date = start_date or end_date - timedelta(days=DEFAULT_REPORT_DAYS - 1)
        if start_date > end_date:
            raise ValidationError("start_date must be on or before end_date")

        effective_school_id = get_effective_school_id(user, school_id)
        tz_name = "UTC"
        if effective_school_id is not None:
            school = await self.db.get(School, effective_school_id)
            tz_name = school.timezone if school else "UTC"

        range_start, _ = date_bounds(start_date, tz_name)
        _, range_end = date_bounds(end_date, tz_name)

        report = {
            "start_date": start_date,
            "end_date": end_date,
            "summary": {"total_records": 0, "present": 0, "late": 0, "absent": 0, "attendance_rate": 0.0},
            "by_student": [],
        }

        query = (
            select(Attendance)
            .options(selectinload(Attendance.student))
            .where(and_(Attendance.check_in_time >= range_start, Attendance.check_in_time < range_end))
        )
        if effective_school_id is not None:
            query = query.where(Attendance.school_id == effective_school_id)

        classroom_ids = await restrict_to_teacher_classrooms(self.db, user, classroom_id)
        if classroom_ids is not None:
            if not classroom_ids:
                return report
            query = query.where(Attendance.classroom_id.in_(classroom_ids))

        records = (await self.db.execute(query.order_by(Attendance.check_in_time))).scalars().all()

        by_student = OrderedDict()
        summary = report["summary"]
        for record in records:
            key = record.student_id
            if key not in by_student:
                by_student[key] = {
                    "student_id": record.student.student_id,
                    "name": record.student.name,
                    "class_name": record.student.class_name,
                    "present": 0,
                    "late": 0,
                    "absent": 0,
                    "total": 0,
                }
            row = by_student[key]
            status_key = {
                AttendanceStatus.PRESENT: "present",
                AttendanceStatus.LATE: "late",
                AttendanceStatus.ABSENT: "absent",
            }[record.status]
            row[status_key] += 1
            row["total"] += 1
            summary[status_key] += 1
            summary["total_records"] += 1

        if summary["total_records"]:
            attended = summary["present"] + summary["late"]
            summary["attendance_rate"] = round(attended / summary["total_records"] * 100, 1)

        report["by_student"] = sorted(by_student.values(), key=lambda row: row["name"])
        return report
