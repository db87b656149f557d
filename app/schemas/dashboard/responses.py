from typing import Optional

from pydantic import BaseModel

from app.schemas.air_quality.responses import AirQualityResponse


class AttendanceToday(BaseModel):
    total_students: int
    present: int
    late: int
    absent: int
    attendance_rate: float


class DeviceCounts(BaseModel):
    total: int
    online: int
    offline: int


class DashboardStats(BaseModel):
    attendance: AttendanceToday
    devices: DeviceCounts
    open_alerts: int
    pending_enrollments: int
    latest_air_quality: Optional[AirQualityResponse] = None
