from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.models.user import User
from app.schemas.report import AttendanceReport
from app.services.report_service import ReportService

router = APIRouter()


def get_report_service(db: AsyncSession = Depends(get_db)) -> ReportService:
    return ReportService(db)


@router.get("/attendance", response_model=AttendanceReport)
async def attendance_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    classroom_id: Optional[int] = None,
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    report_service: ReportService = Depends(get_report_service)
):
    try:
        return await report_service.attendance_report(
            current_user,
            start_date=start_date,
            end_date=end_date,
            classroom_id=classroom_id,
            school_id=school_id,
        )
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while building attendance report")
        raise BaseAPIError("Failed to build attendance report")
