from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.models.user import User
from app.schemas.dashboard import DashboardStats
from app.services.dashboard_service import DashboardService

router = APIRouter()


def get_dashboard_service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    """Today's attendance, device health, open alerts and the latest air reading"""
    try:
        return await dashboard_service.get_stats(current_user, school_id=school_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while building dashboard stats")
        raise BaseAPIError("Failed to fetch dashboard stats")
