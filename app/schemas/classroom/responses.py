from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.schemas.enums import DeviceStatus
from app.schemas.user.responses import TeacherSummary


class ClassroomSummary(BaseModel):
    id: int
    name: str
    grade: Optional[str] = None
    section: Optional[str] = None

    class Config:
        from_attributes = True


class ClassroomResponse(ClassroomSummary):
    school_id: int
    capacity: Optional[int] = None
    created_at: Optional[datetime] = None
    student_count: int = 0
    device_count: int = 0
    teachers: List[TeacherSummary] = []


class ClassroomStudent(BaseModel):
    id: int
    student_id: str
    name: str

    class Config:
        from_attributes = True


class ClassroomDevice(BaseModel):
    id: int
    device_id: str
    name: str
    status: DeviceStatus

    class Config:
        from_attributes = True


class ClassroomDetailResponse(ClassroomResponse):
    students: List[ClassroomStudent] = []
    devices: List[ClassroomDevice] = []
