from typing import Optional

from pydantic import BaseModel, Field, model_validator


class AttendanceCreate(BaseModel):
    student_id: str = Field(..., min_length=1, description="Human-facing student identifier")
    device_id: int = Field(..., description="Device row id")
    fingerprint_match: bool
    reliability: Optional[float] = Field(None, ge=0, le=100)


class DeviceAttendanceCreate(BaseModel):
    student_id: Optional[str] = None
    # Scanner slot id stored as the student's fingerprint data
    fingerprint_id: Optional[int] = Field(None, ge=1)
    fingerprint_match: bool
    reliability: Optional[float] = Field(None, ge=0, le=100)

    @model_validator(mode="after")
    def require_student_reference(self):
        if not self.student_id and self.fingerprint_id is None:
            raise ValueError("student_id or fingerprint_id is required")
        return self
