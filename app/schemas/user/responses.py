from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.enums import UserRoleEnum


class SchoolSummary(BaseModel):
    id: int
    name: str
    code: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str
    role: UserRoleEnum
    school_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserWithSchoolResponse(UserResponse):
    school: Optional[SchoolSummary] = None


class TeacherSummary(BaseModel):
    id: int
    full_name: str
    email: str

    class Config:
        from_attributes = True
