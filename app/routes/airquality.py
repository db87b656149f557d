from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.device_auth import get_device_from_secret
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.core.permissions import require_sensor_roles
from app.models.device import Device
from app.models.user import User
from app.schemas.air_quality import (
    AirQualityCreate,
    AirQualityResponse,
    AirQualityStats,
    DeviceAirQualityCreate,
    RoomSummary,
)
from app.services.air_quality_service import AirQualityService

router = APIRouter()


def get_air_quality_service(db: AsyncSession = Depends(get_db)) -> AirQualityService:
    return AirQualityService(db)


@router.get("", response_model=List[AirQualityResponse])
async def list_readings(
    room: Optional[str] = None,
    classroom_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=1000),
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    air_quality_service: AirQualityService = Depends(get_air_quality_service)
):
    try:
        return await air_quality_service.list_readings(
            current_user,
            room=room,
            classroom_id=classroom_id,
            start=start_date,
            end=end_date,
            limit=limit,
            school_id=school_id,
        )
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing air quality readings")
        raise BaseAPIError("Failed to fetch air quality data")


@router.get("/rooms", response_model=List[RoomSummary])
async def list_rooms(
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    air_quality_service: AirQualityService = Depends(get_air_quality_service)
):
    """Latest reading and 24h averages for every room"""
    try:
        return await air_quality_service.room_summaries(current_user, school_id=school_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while summarising rooms")
        raise BaseAPIError("Failed to fetch room data")


@router.get("/stats", response_model=AirQualityStats)
async def get_stats(
    room: Optional[str] = None,
    hours: int = Query(24, ge=1, le=24 * 31),
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    air_quality_service: AirQualityService = Depends(get_air_quality_service)
):
    try:
        return await air_quality_service.get_stats(current_user, room=room, hours=hours, school_id=school_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while computing air quality stats")
        raise BaseAPIError("Failed to fetch air quality stats")


@router.post("", response_model=AirQualityResponse, status_code=status.HTTP_201_CREATED)
async def record_reading(
    data: AirQualityCreate,
    current_user: User = Depends(require_sensor_roles()),
    air_quality_service: AirQualityService = Depends(get_air_quality_service)
):
    try:
        return await air_quality_service.record_reading(current_user, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while recording air quality reading")
        raise BaseAPIError("Failed to record air quality data")


@router.post("/device", response_model=AirQualityResponse, status_code=status.HTTP_201_CREATED)
async def record_device_reading(
    data: DeviceAirQualityCreate,
    device: Device = Depends(get_device_from_secret),
    air_quality_service: AirQualityService = Depends(get_air_quality_service)
):
    try:
        return await air_quality_service.record_device_reading(device, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while recording reading from {device.device_id}")
        raise BaseAPIError("Failed to record air quality data")
