from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.enums import SchoolStatus


class SchoolCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    contact_email: EmailStr
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    timezone: str = "UTC"


class SchoolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    timezone: Optional[str] = None
    status: Optional[SchoolStatus] = None

    @field_validator("name", "timezone", "status")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v
