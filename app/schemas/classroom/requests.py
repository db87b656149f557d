from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ClassroomCreate(BaseModel):
    name: str = Field(..., min_length=1)
    grade: Optional[str] = None
    section: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    school_id: Optional[int] = None


class ClassroomUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    grade: Optional[str] = None
    section: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        if v is None:
            raise ValueError("Classroom name cannot be null")
        return v


class TeacherAssignmentRequest(BaseModel):
    teacher_id: int
