from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AirQualityResponse(BaseModel):
    id: int
    school_id: int
    device_id: Optional[int] = None
    classroom_id: Optional[int] = None
    room: str
    pm25: float
    co2: float
    temperature: float
    humidity: float
    timestamp: datetime

    class Config:
        from_attributes = True


class RoomAverages(BaseModel):
    pm25: Optional[float] = None
    co2: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None


class RoomSummary(BaseModel):
    room: str
    current: AirQualityResponse
    averages: RoomAverages
    quality: str


class MetricStats(BaseModel):
    avg: Optional[float] = None
    max: Optional[float] = None
    min: Optional[float] = None


class AirQualityStats(BaseModel):
    pm25: MetricStats
    co2: MetricStats
    temperature: MetricStats
    humidity: MetricStats
    count: int
