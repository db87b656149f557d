from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.device_auth import get_device_from_secret, get_presented_secret
from app.core.errors import BaseAPIError
from app.core.logging import logger
from app.core.permissions import require_school_admin
from app.models.device import Device
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.device import (
    DeviceAirReading,
    DeviceAttendanceEntry,
    DeviceConnectRequest,
    DeviceCreate,
    DeviceCredentialsResponse,
    DeviceDetailResponse,
    DeviceProvisionRequest,
    DeviceRegisterRequest,
    DeviceResponse,
    DeviceStatusRequest,
    DeviceUpdate,
    HeartbeatRequest,
)
from app.services.device_service import DeviceService

router = APIRouter()


def get_device_service(db: AsyncSession = Depends(get_db)) -> DeviceService:
    return DeviceService(db)


@router.get("", response_model=List[DeviceResponse])
async def list_devices(
    status_filter: Optional[str] = Query(None, alias="status"),
    school_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: DeviceService = Depends(get_device_service)
):
    try:
        return await service.list_devices(current_user, status=status_filter, school_id=school_id)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while listing devices")
        raise BaseAPIError("Failed to fetch devices")


@router.post("", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def create_device(
    data: DeviceCreate,
    current_user: User = Depends(require_school_admin()),
    service: DeviceService = Depends(get_device_service)
):
    try:
        return await service.create_device(current_user, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while creating device")
        raise BaseAPIError("Failed to create device")


@router.post("/register", response_model=DeviceCredentialsResponse, status_code=status.HTTP_201_CREATED)
async def register_device(
    data: DeviceRegisterRequest,
    current_user: User = Depends(require_school_admin()),
    service: DeviceService = Depends(get_device_service)
):
    """Register a device and return its token and secret (shown once)"""
    try:
        device, token, secret = await service.register_device(current_user, data)
        return {"device": device, "token": token, "secret": secret}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while registering device")
        raise BaseAPIError("Failed to register device")


@router.post("/connect", response_model=DeviceCredentialsResponse)
async def connect_device(
    data: DeviceConnectRequest,
    current_user: User = Depends(require_school_admin()),
    service: DeviceService = Depends(get_device_service)
):
    """Adopt an existing device and rotate its credentials"""
    try:
        device, token, secret = await service.connect_device(current_user, data)
        return {"device": device, "token": token, "secret": secret}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while connecting device")
        raise BaseAPIError("Failed to connect device")


@router.post("/provision", response_model=DeviceCredentialsResponse)
async def provision_device(
    data: DeviceProvisionRequest,
    current_user: User = Depends(require_school_admin()),
    service: DeviceService = Depends(get_device_service)
):
    try:
        device, token = await service.provision_device(current_user, data.device_id)
        return {"device": device, "token": token}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error while provisioning device")
        raise BaseAPIError("Failed to provision device")


@router.post("/heartbeat", response_model=DeviceResponse)
async def heartbeat(
    data: HeartbeatRequest,
    device: Device = Depends(get_device_from_secret),
    service: DeviceService = Depends(get_device_service)
):
    try:
        return await service.heartbeat(device, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while processing heartbeat from {device.device_id}")
        raise BaseAPIError("Failed to update device status")


@router.post("/status", response_model=DeviceResponse)
async def report_status(
    data: DeviceStatusRequest,
    request: Request,
    response: Response,
    service: DeviceService = Depends(get_device_service)
):
    """
    Status report keyed by hardware id.

    Provisioned devices must send X-Device-Secret. Unknown devices are only
    registered (201) when DEVICE_AUTO_REGISTRATION is enabled.
    """
    try:
        device, created = await service.report_status(data, get_presented_secret(request))
        if created:
            response.status_code = status.HTTP_201_CREATED
        return device
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while processing status from {data.device_id}")
        raise BaseAPIError("Failed to update device status")


@router.get("/{device_pk}", response_model=DeviceDetailResponse)
async def get_device(
    device_pk: int,
    current_user: User = Depends(get_current_active_user),
    service: DeviceService = Depends(get_device_service)
):
    try:
        detail = await service.get_device_detail(current_user, device_pk)
        payload = DeviceDetailResponse.model_validate(detail["device"])
        return payload.model_copy(update={
            "recent_attendance": [
                DeviceAttendanceEntry.model_validate(entry) for entry in detail["recent_attendance"]
            ],
            "recent_air_quality": [
                DeviceAirReading.model_validate(reading) for reading in detail["recent_air_quality"]
            ],
        })
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while fetching device {device_pk}")
        raise BaseAPIError("Failed to fetch device")


@router.put("/{device_pk}", response_model=DeviceResponse)
async def update_device(
    device_pk: int,
    data: DeviceUpdate,
    current_user: User = Depends(require_school_admin()),
    service: DeviceService = Depends(get_device_service)
):
    try:
        return await service.update_device(current_user, device_pk, data)
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while updating device {device_pk}")
        raise BaseAPIError("Failed to update device")


@router.delete("/{device_pk}", response_model=MessageResponse)
async def delete_device(
    device_pk: int,
    current_user: User = Depends(require_school_admin()),
    service: DeviceService = Depends(get_device_service)
):
    try:
        await service.delete_device(current_user, device_pk)
        return {"message": "Device deleted successfully"}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error while deleting device {device_pk}")
        raise BaseAPIError("Failed to delete device")
