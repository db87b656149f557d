from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.schemas.classroom.responses import ClassroomSummary
from app.schemas.enums import EnrollmentStatus


class EnrollmentStudent(BaseModel):
    id: int
    student_id: str
    name: str
    class_name: Optional[str] = None
    classroom_id: Optional[int] = None

    class Config:
        from_attributes = True


class EnrollmentDevice(BaseModel):
    id: int
    device_id: str
    name: str
    classroom_id: Optional[int] = None

    class Config:
        from_attributes = True


class EnrollmentResponse(BaseModel):
    id: int
    school_id: int
    student_id: int
    classroom_id: Optional[int] = None
    device_id: Optional[int] = None
    status: EnrollmentStatus
    failure_reason: Optional[str] = None
    requested_by: Optional[int] = None
    claimed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    student: EnrollmentStudent
    classroom: Optional[ClassroomSummary] = None
    device: Optional[EnrollmentDevice] = None

    class Config:
        from_attributes = True


class ReclaimResponse(BaseModel):
    reclaimed: int
    enrollment_ids: List[int] = []
