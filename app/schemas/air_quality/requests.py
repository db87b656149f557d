from typing import Optional

from pydantic import BaseModel, Field


class AirQualityCreate(BaseModel):
    room: str = Field(..., min_length=1)
    pm25: float = Field(..., ge=0)
    co2: float = Field(..., ge=0)
    temperature: float
    humidity: float = Field(..., ge=0, le=100)
    device_id: Optional[int] = None
    classroom_id: Optional[int] = None
    school_id: Optional[int] = None


class DeviceAirQualityCreate(BaseModel):
    room: Optional[str] = None
    pm25: float = Field(..., ge=0)
    co2: float = Field(..., ge=0)
    temperature: float
    humidity: float = Field(..., ge=0, le=100)
