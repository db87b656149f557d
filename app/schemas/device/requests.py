from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.enums import DeviceStatus, DeviceType


class DeviceCreate(BaseModel):
    device_id: str = Field(..., min_length=1, description="Hardware identifier")
    name: str = Field(..., min_length=1)
    type: DeviceType
    location: Optional[str] = None
    classroom_id: Optional[int] = None
    firmware_version: Optional[str] = None
    school_id: Optional[int] = None


class DeviceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = None
    status: Optional[DeviceStatus] = None
    battery: Optional[int] = Field(None, ge=0, le=100)
    signal: Optional[int] = Field(None, ge=0, le=100)
    firmware_version: Optional[str] = None
    classroom_id: Optional[int] = None

    @field_validator("name", "status", "battery", "signal")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class DeviceRegisterRequest(DeviceCreate):
    """Admin-side registration that also issues device credentials"""


class DeviceConnectRequest(BaseModel):
    device_id: str = Field(..., min_length=1)
    classroom_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = None


class DeviceProvisionRequest(BaseModel):
    device_id: str = Field(..., min_length=1)


class HeartbeatRequest(BaseModel):
    battery: int = Field(..., ge=0, le=100)
    signal: int = Field(..., ge=0, le=100)
    uptime: Optional[str] = None
    status: Optional[DeviceStatus] = None
    location: Optional[str] = None
    classroom_id: Optional[int] = None


class DeviceStatusRequest(HeartbeatRequest):
    device_id: str = Field(..., min_length=1)
    # Tenant hints, only consulted when an unknown device auto-registers
    school_id: Optional[int] = None
    school_code: Optional[str] = None
