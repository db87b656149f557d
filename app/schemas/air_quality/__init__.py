from .requests import AirQualityCreate, DeviceAirQualityCreate
from .responses import (
    AirQualityResponse,
    RoomAverages,
    RoomSummary,
    MetricStats,
    AirQualityStats
)
