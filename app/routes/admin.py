from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.core.permissions import require_platform_admin
from app.models.user import User
from app.schemas.admin import PlatformOverview, SystemLogResponse
from app.schemas.common import MessageResponse
from app.schemas.school import SchoolCreate, SchoolResponse, SchoolUpdate, SchoolWithCountsResponse
from app.schemas.user import UserRoleUpdate, UserWithSchoolResponse
from app.services.admin_service import AdminService
from app.services.school_service import SchoolService

router = APIRouter()


def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminService:
    return AdminService(db)


def get_school_service(db: AsyncSession = Depends(get_db)) -> SchoolService:
    return SchoolService(db)


@router.get("/overview", response_model=PlatformOverview)
async def get_overview(
    current_user: User = Depends(require_platform_admin()),
    admin_service: AdminService = Depends(get_admin_service)
):
    try:
        return await admin_service.overview()
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while building platform overview")
        raise BaseAPIError("Failed to fetch platform overview")


@router.get("/users", response_model=List[UserWithSchoolResponse])
async def list_users(
    current_user: User = Depends(require_platform_admin()),
    admin_service: AdminService = Depends(get_admin_service)
):
    try:
        return await admin_service.list_users()
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing users")
        raise BaseAPIError("Failed to fetch users")


@router.patch("/users/{user_id}/role", response_model=UserWithSchoolResponse)
async def update_user_role(
    user_id: int,
    data: UserRoleUpdate,
    current_user: User = Depends(require_platform_admin()),
    admin_service: AdminService = Depends(get_admin_service)
):
    try:
        return await admin_service.update_user_role(current_user, user_id, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while updating role of user {user_id}")
        raise BaseAPIError("Failed to update user role")


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_platform_admin()),
    admin_service: AdminService = Depends(get_admin_service)
):
    try:
        await admin_service.delete_user(current_user, user_id)
        return {"message": "User deleted successfully"}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while deleting user {user_id}")
        raise BaseAPIError("Failed to delete user")


@router.get("/schools", response_model=List[SchoolWithCountsResponse])
async def list_schools(
    current_user: User = Depends(require_platform_admin()),
    school_service: SchoolService = Depends(get_school_service)
):
    try:
        rows = await school_service.list_schools()
        return [
            SchoolWithCountsResponse.model_validate(row["school"]).model_copy(update={
                "user_count": row["user_count"],
                "device_count": row["device_count"],
                "student_count": row["student_count"],
            })
            for row in rows
        ]
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing schools")
        raise BaseAPIError("Failed to fetch schools")


@router.post("/schools", response_model=SchoolResponse, status_code=status.HTTP_201_CREATED)
async def create_school(
    data: SchoolCreate,
    current_user: User = Depends(require_platform_admin()),
    school_service: SchoolService = Depends(get_school_service)
):
    try:
        return await school_service.create_school(current_user, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while creating school")
        raise BaseAPIError("Failed to create school")


@router.patch("/schools/{school_id}", response_model=SchoolResponse)
async def update_school(
    school_id: int,
    data: SchoolUpdate,
    current_user: User = Depends(require_platform_admin()),
    school_service: SchoolService = Depends(get_school_service)
):
    try:
        return await school_service.update_school(current_user, school_id, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while updating school {school_id}")
        raise BaseAPIError("Failed to update school")


@router.get("/logs", response_model=List[SystemLogResponse])
async def list_logs(
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_platform_admin()),
    admin_service: AdminService = Depends(get_admin_service)
):
    try:
        return await admin_service.list_logs(limit=limit)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing system logs")
        raise BaseAPIError("Failed to fetch system logs")
