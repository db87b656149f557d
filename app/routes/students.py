from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.core.permissions import require_school_admin
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.student import StudentCreate, StudentDetailResponse, StudentResponse, StudentUpdate
from app.services.student_service import StudentService

router = APIRouter()


def get_student_service(db: AsyncSession = Depends(get_db)) -> StudentService:
    return StudentService(db)


@router.get("", response_model=List[StudentResponse])
async def list_students(
    class_name: Optional[str] = None,
    classroom_id: Optional[int] = None,
    search: Optional[str] = None,
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    student_service: StudentService = Depends(get_student_service)
):
    try:
        return await student_service.list_students(
            current_user,
            class_name=class_name,
            classroom_id=classroom_id,
            search=search,
            school_id=school_id,
        )
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing students")
        raise BaseAPIError("Failed to fetch students")


@router.get("/{student_pk}", response_model=StudentDetailResponse)
async def get_student(
    student_pk: int,
    current_user: User = Depends(get_current_active_user),
    student_service: StudentService = Depends(get_student_service)
):
    try:
        detail = await student_service.get_student_detail(current_user, student_pk)
        return StudentDetailResponse.model_validate(detail["student"]).model_copy(
            update={"attendance_count": detail["attendance_count"]}
        )
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while fetching student {student_pk}")
        raise BaseAPIError("Failed to fetch student")


@router.post("", response_model=StudentDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    data: StudentCreate,
    current_user: User = Depends(require_school_admin()),
    student_service: StudentService = Depends(get_student_service)
):
    try:
        return await student_service.create_student(current_user, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while creating student")
        raise BaseAPIError("Failed to create student")


@router.put("/{student_pk}", response_model=StudentDetailResponse)
async def update_student(
    student_pk: int,
    data: StudentUpdate,
    current_user: User = Depends(require_school_admin()),
    student_service: StudentService = Depends(get_student_service)
):
    try:
        return await student_service.update_student(current_user, student_pk, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while updating student {student_pk}")
        raise BaseAPIError("Failed to update student")


@router.delete("/{student_pk}", response_model=MessageResponse)
async def delete_student(
    student_pk: int,
    current_user: User = Depends(require_school_admin()),
    student_service: StudentService = Depends(get_student_service)
):
    try:
        await student_service.delete_student(current_user, student_pk)
        return {"message": "Student deleted successfully"}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while deleting student {student_pk}")
        raise BaseAPIError("Failed to delete student")
