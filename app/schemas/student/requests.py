from typing import Optional

from pydantic import BaseModel, Field, field_validator


class StudentCreate(BaseModel):
    student_id: str = Field(..., min_length=1, description="Human-facing student identifier")
    name: str = Field(..., min_length=1)
    class_name: Optional[str] = None
    classroom_id: Optional[int] = None
    fingerprint_data: Optional[str] = None
    school_id: Optional[int] = None


class StudentUpdate(BaseModel):
    student_id: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    class_name: Optional[str] = None
    classroom_id: Optional[int] = None
    fingerprint_data: Optional[str] = None

    @field_validator("student_id", "name")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v
