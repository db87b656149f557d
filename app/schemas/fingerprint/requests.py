from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


class EnrollmentCreate(BaseModel):
    student_id: int = Field(..., description="Student row id")
    classroom_id: Optional[int] = None
    # Either the device row id or its hardware identifier
    device_id: Optional[Union[int, str]] = None


class EnrollmentComplete(BaseModel):
    template: str

    @field_validator("template")
    @classmethod
    def template_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Fingerprint template is required")
        return v


class EnrollmentFail(BaseModel):
    reason: Optional[str] = None
