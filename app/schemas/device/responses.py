from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.schemas.classroom.responses import ClassroomSummary
from app.schemas.enums import AttendanceStatus, DeviceStatus, DeviceType


class DeviceResponse(BaseModel):
    id: int
    device_id: str
    name: str
    type: DeviceType
    status: DeviceStatus
    location: Optional[str] = None
    school_id: int
    classroom_id: Optional[int] = None
    battery: Optional[int] = None
    signal: Optional[int] = None
    uptime: Optional[str] = None
    firmware_version: Optional[str] = None
    last_seen: Optional[datetime] = None
    is_provisioned: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeviceAttendanceEntry(BaseModel):
    id: int
    student_id: int
    check_in_time: datetime
    status: AttendanceStatus

    class Config:
        from_attributes = True


class DeviceAirReading(BaseModel):
    id: int
    room: str
    pm25: float
    co2: float
    temperature: float
    humidity: float
    timestamp: datetime

    class Config:
        from_attributes = True


class DeviceDetailResponse(DeviceResponse):
    classroom: Optional[ClassroomSummary] = None
    recent_attendance: List[DeviceAttendanceEntry] = []
    recent_air_quality: List[DeviceAirReading] = []


class DeviceCredentialsResponse(BaseModel):
    device: DeviceResponse
    token: str
    # Returned once; only its hash is stored
    secret: Optional[str] = None
