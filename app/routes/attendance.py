from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.device_auth import get_device_from_secret
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.core.permissions import require_attendance_roles
from app.models.device import Device
from app.models.user import User
from app.schemas.attendance import (
    AttendanceCreate,
    AttendanceResponse,
    AttendanceStats,
    DeviceAttendanceCreate,
)
from app.services.attendance_service import AttendanceService

router = APIRouter()


def get_attendance_service(db: AsyncSession = Depends(get_db)) -> AttendanceService:
    return AttendanceService(db)


@router.get("", response_model=List[AttendanceResponse])
async def list_attendance(
    day: Optional[date] = Query(None, alias="date"),
    class_name: Optional[str] = None,
    classroom_id: Optional[int] = None,
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    """List check-ins; with ``date`` only the earliest per student is kept"""
    try:
        return await attendance_service.list_attendance(
            current_user,
            day=day,
            class_name=class_name,
            classroom_id=classroom_id,
            school_id=school_id,
        )
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing attendance")
        raise BaseAPIError("Failed to fetch attendance")


@router.post("", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED)
async def record_attendance(
    data: AttendanceCreate,
    response: Response,
    current_user: User = Depends(require_attendance_roles()),
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    try:
        attendance, created = await attendance_service.record_attendance(current_user, data)
        if not created:
            response.status_code = status.HTTP_200_OK
        return attendance
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while recording attendance for {data.student_id}")
        raise BaseAPIError("Failed to record attendance")


@router.post("/device", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED)
async def record_device_attendance(
    data: DeviceAttendanceCreate,
    response: Response,
    device: Device = Depends(get_device_from_secret),
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    try:
        attendance, created = await attendance_service.record_device_attendance(device, data)
        if not created:
            response.status_code = status.HTTP_200_OK
        return attendance
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while recording attendance from {device.device_id}")
        raise BaseAPIError("Failed to record attendance")


@router.get("/stats", response_model=AttendanceStats)
async def get_attendance_stats(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    try:
        return await attendance_service.get_stats(
            current_user, start=start_date, end=end_date, school_id=school_id
        )
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while computing attendance stats")
        raise BaseAPIError("Failed to fetch attendance stats")


@router.get("/student/{student_id}", response_model=List[AttendanceResponse])
async def get_student_attendance(
    student_id: str,
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    attendance_service: AttendanceService = Depends(get_attendance_service)
):
    try:
        return await attendance_service.get_student_history(current_user, student_id, limit=limit)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while fetching attendance for {student_id}")
        raise BaseAPIError("Failed to fetch student attendance")
