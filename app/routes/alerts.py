from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.models.user import User
from app.schemas.alert import AlertResponse
from app.schemas.common import MessageResponse
from app.services.alert_service import AlertService

router = APIRouter()


def get_alert_service(db: AsyncSession = Depends(get_db)) -> AlertService:
    return AlertService(db)


@router.get("", response_model=List[AlertResponse])
async def list_alerts(
    resolved: Optional[bool] = None,
    severity: Optional[str] = None,
    alert_type: Optional[str] = Query(None, alias="type"),
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    alert_service: AlertService = Depends(get_alert_service)
):
    try:
        return await alert_service.list_alerts(
            current_user,
            resolved=resolved,
            severity=severity,
            alert_type=alert_type,
            school_id=school_id,
        )
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing alerts")
        raise BaseAPIError("Failed to fetch alerts")


@router.patch("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: int,
    current_user: User = Depends(get_current_active_user),
    alert_service: AlertService = Depends(get_alert_service)
):
    try:
        return await alert_service.resolve_alert(current_user, alert_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while resolving alert {alert_id}")
        raise BaseAPIError("Failed to resolve alert")


@router.delete("/{alert_id}", response_model=MessageResponse)
async def delete_alert(
    alert_id: int,
    current_user: User = Depends(get_current_active_user),
    alert_service: AlertService = Depends(get_alert_service)
):
    try:
        await alert_service.delete_alert(current_user, alert_id)
        return {"message": "Alert deleted successfully"}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while deleting alert {alert_id}")
        raise BaseAPIError("Failed to delete alert")
