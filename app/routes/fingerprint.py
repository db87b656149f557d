from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.device_auth import get_registered_device
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.core.permissions import require_enrollment_roles, require_platform_admin
from app.models.device import Device
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.fingerprint import (
    EnrollmentComplete,
    EnrollmentCreate,
    EnrollmentFail,
    EnrollmentResponse,
    ReclaimResponse,
)
from app.services.fingerprint_service import FingerprintService

router = APIRouter()


def get_fingerprint_service(db: AsyncSession = Depends(get_db)) -> FingerprintService:
    return FingerprintService(db)


@router.post("/enrollments", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def request_enrollment(
    data: EnrollmentCreate,
    response: Response,
    current_user: User = Depends(require_enrollment_roles()),
    service: FingerprintService = Depends(get_fingerprint_service)
):
    """
    Queue a fingerprint capture for a student.

    Returns 201 with the new enrollment, or 200 with the student's already
    active (PENDING or CAPTURING) enrollment.
    """
    try:
        enrollment, created = await service.request_enrollment(current_user, data)
        if not created:
            response.status_code = status.HTTP_200_OK
        return enrollment
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while requesting fingerprint enrollment")
        raise BaseAPIError("Failed to create fingerprint enrollment")


@router.get("/enrollments", response_model=List[EnrollmentResponse])
async def list_enrollments(
    status_filter: Optional[str] = Query(None, alias="status"),
    classroom_id: Optional[int] = None,
    student_id: Optional[int] = None,
    limit: int = Query(settings.ENROLLMENT_LIST_LIMIT, ge=1, le=200),
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: FingerprintService = Depends(get_fingerprint_service)
):
    try:
        return await service.list_enrollments(
            current_user,
            status=status_filter,
            classroom_id=classroom_id,
            student_id=student_id,
            limit=limit,
            school_id=school_id,
        )
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing fingerprint enrollments")
        raise BaseAPIError("Failed to fetch fingerprint enrollments")


@router.post("/enrollments/reclaim", response_model=ReclaimResponse)
async def reclaim_stale_enrollments(
    timeout_minutes: int = Query(settings.ENROLLMENT_CAPTURE_TIMEOUT_MINUTES, ge=0),
    current_user: User = Depends(require_platform_admin()),
    service: FingerprintService = Depends(get_fingerprint_service)
):
    """Run the stale-capture sweep immediately"""
    try:
        reclaimed = await service.reclaim_stale_enrollments(timeout_minutes)
        return {"reclaimed": len(reclaimed), "enrollment_ids": reclaimed}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while reclaiming enrollments")
        raise BaseAPIError("Failed to reclaim enrollments")


@router.get("/enrollments/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: int,
    current_user: User = Depends(get_current_active_user),
    service: FingerprintService = Depends(get_fingerprint_service)
):
    try:
        return await service.get_enrollment_for_user(current_user, enrollment_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while fetching enrollment {enrollment_id}")
        raise BaseAPIError("Failed to fetch fingerprint enrollment")


@router.post("/device/next", response_model=Optional[EnrollmentResponse])
async def next_enrollment(
    device: Device = Depends(get_registered_device),
    service: FingerprintService = Depends(get_fingerprint_service)
):
    """Hand the calling scanner its next job, or null when the queue is empty"""
    try:
        return await service.claim_next(device)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while device {device.device_id} pulled a job")
        raise BaseAPIError("Failed to fetch next enrollment")


@router.post("/device/{enrollment_id}/complete", response_model=EnrollmentResponse)
async def complete_enrollment(
    enrollment_id: int,
    data: EnrollmentComplete,
    device: Device = Depends(get_registered_device),
    service: FingerprintService = Depends(get_fingerprint_service)
):
    try:
        return await service.complete_enrollment(device, enrollment_id, data.template)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while completing enrollment {enrollment_id}")
        raise BaseAPIError("Failed to complete enrollment")


@router.post("/device/{enrollment_id}/fail", response_model=MessageResponse)
async def fail_enrollment(
    enrollment_id: int,
    data: Optional[EnrollmentFail] = None,
    device: Device = Depends(get_registered_device),
    service: FingerprintService = Depends(get_fingerprint_service)
):
    try:
        await service.fail_enrollment(device, enrollment_id, data.reason if data else None)
        return {"message": "Enrollment marked as failed"}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while failing enrollment {enrollment_id}")
        raise BaseAPIError("Failed to update enrollment")
