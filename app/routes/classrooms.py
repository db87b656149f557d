from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.core.permissions import require_school_admin
from app.models.user import User
from app.schemas.classroom import (
    ClassroomCreate,
    ClassroomDetailResponse,
    ClassroomResponse,
    ClassroomUpdate,
    TeacherAssignmentRequest,
)
from app.schemas.common import MessageResponse
from app.schemas.user import TeacherSummary
from app.services.classroom_service import ClassroomService

router = APIRouter()


def get_classroom_service(db: AsyncSession = Depends(get_db)) -> ClassroomService:
    return ClassroomService(db)


@router.get("", response_model=List[ClassroomResponse])
async def list_classrooms(
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    classroom_service: ClassroomService = Depends(get_classroom_service)
):
    try:
        return await classroom_service.list_classrooms(current_user, school_id=school_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing classrooms")
        raise BaseAPIError("Failed to fetch classrooms")


@router.get("/teachers", response_model=List[TeacherSummary])
async def list_teachers(
    school_id: Optional[int] = None,
    current_user: User = Depends(require_school_admin()),
    classroom_service: ClassroomService = Depends(get_classroom_service)
):
    """Teachers of the school, for the assignment picker"""
    try:
        return await classroom_service.list_teachers(current_user, school_id=school_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing teachers")
        raise BaseAPIError("Failed to fetch teachers")


@router.post("", response_model=ClassroomDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_classroom(
    data: ClassroomCreate,
    current_user: User = Depends(require_school_admin()),
    classroom_service: ClassroomService = Depends(get_classroom_service)
):
    try:
        return await classroom_service.create_classroom(current_user, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while creating classroom")
        raise BaseAPIError("Failed to create classroom")


@router.get("/{classroom_id}", response_model=ClassroomDetailResponse)
async def get_classroom(
    classroom_id: int,
    current_user: User = Depends(get_current_active_user),
    classroom_service: ClassroomService = Depends(get_classroom_service)
):
    try:
        return await classroom_service.get_classroom_detail(current_user, classroom_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while fetching classroom {classroom_id}")
        raise BaseAPIError("Failed to fetch classroom")


@router.patch("/{classroom_id}", response_model=ClassroomDetailResponse)
async def update_classroom(
    classroom_id: int,
    data: ClassroomUpdate,
    current_user: User = Depends(require_school_admin()),
    classroom_service: ClassroomService = Depends(get_classroom_service)
):
    try:
        return await classroom_service.update_classroom(current_user, classroom_id, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while updating classroom {classroom_id}")
        raise BaseAPIError("Failed to update classroom")


@router.delete("/{classroom_id}", response_model=MessageResponse)
async def delete_classroom(
    classroom_id: int,
    current_user: User = Depends(require_school_admin()),
    classroom_service: ClassroomService = Depends(get_classroom_service)
):
    try:
        await classroom_service.delete_classroom(current_user, classroom_id)
        return {"message": "Classroom deleted successfully"}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while deleting classroom {classroom_id}")
        raise BaseAPIError("Failed to delete classroom")


@router.post("/{classroom_id}/teachers", response_model=ClassroomDetailResponse)
async def assign_teacher(
    classroom_id: int,
    data: TeacherAssignmentRequest,
    current_user: User = Depends(require_school_admin()),
    classroom_service: ClassroomService = Depends(get_classroom_service)
):
    try:
        return await classroom_service.assign_teacher(current_user, classroom_id, data.teacher_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while assigning teacher to classroom {classroom_id}")
        raise BaseAPIError("Failed to assign teacher")


@router.delete("/{classroom_id}/teachers/{teacher_id}", response_model=MessageResponse)
async def unassign_teacher(
    classroom_id: int,
    teacher_id: int,
    current_user: User = Depends(require_school_admin()),
    classroom_service: ClassroomService = Depends(get_classroom_service)
):
    try:
        await classroom_service.unassign_teacher(current_user, classroom_id, teacher_id)
        return {"message": "Teacher unassigned successfully"}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while unassigning teacher {teacher_id}")
        raise BaseAPIError("Failed to unassign teacher")
