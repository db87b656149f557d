from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.classroom.responses import ClassroomSummary


class StudentResponse(BaseModel):
    id: int
    student_id: str
    name: str
    class_name: Optional[str] = None
    classroom_id: Optional[int] = None
    school_id: int
    has_fingerprint: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentDetailResponse(StudentResponse):
    classroom: Optional[ClassroomSummary] = None
    attendance_count: int = 0
