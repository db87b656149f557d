from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.enums import SchoolStatus


class SchoolResponse(BaseModel):
    id: int
    name: str
    code: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    timezone: str
    status: SchoolStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SchoolWithCountsResponse(SchoolResponse):
    user_count: int = 0
    device_count: int = 0
    student_count: int = 0
