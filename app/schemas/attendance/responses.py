from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.classroom.responses import ClassroomSummary
from app.schemas.enums import AttendanceStatus


class AttendanceStudent(BaseModel):
    id: int
    student_id: str
    name: str
    class_name: Optional[str] = None

    class Config:
        from_attributes = True


class AttendanceDevice(BaseModel):
    id: int
    device_id: str
    name: str

    class Config:
        from_attributes = True


class AttendanceResponse(BaseModel):
    id: int
    school_id: int
    student_id: int
    classroom_id: Optional[int] = None
    device_id: Optional[int] = None
    teacher_id: Optional[int] = None
    check_in_time: datetime
    status: AttendanceStatus
    fingerprint_match: bool
    reliability: float
    student: AttendanceStudent
    classroom: Optional[ClassroomSummary] = None
    device: Optional[AttendanceDevice] = None

    class Config:
        from_attributes = True


class AttendanceStats(BaseModel):
    total: int
    present: int
    absent: int
    late: int
    present_rate: float
