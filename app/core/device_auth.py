"""
Device identity gates.

Two ways for firmware to identify itself:

* secret-based: a hardware id sent as ``X-Device-Id`` (or ``device_id`` in
  the JSON body or query string) plus, once provisioned, ``X-Device-Secret``;
* token-based: a long-lived device JWT issued at provisioning time.
"""
import json
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_bearer_token
from app.core.errors import AuthenticationError, NotFoundError, PermissionDenied, TokenError
from app.core.logging import logger
from app.core.security import TokenType, verify_device_secret, verify_token
from app.models.device import Device

DEVICE_ID_HEADER = "X-Device-Id"
DEVICE_SECRET_HEADER = "X-Device-Secret"


@dataclass(frozen=True)
class DeviceIdentity:
    device_id: str
    school_id: int


async def extract_device_id(request: Request) -> Optional[str]:
    """Device id from header, then JSON body, then query string"""
    header_value = request.headers.get(DEVICE_ID_HEADER)
    if header_value:
        return header_value.strip()

    body = await request.body()
    if body:
        try:
            payload = json.loads(body)
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("device_id"):
            return str(payload["device_id"]).strip()

    query_value = request.query_params.get("device_id")
    if query_value:
        return query_value.strip()

    return None


async def get_device_by_hardware_id(db: AsyncSession, device_id: str) -> Optional[Device]:
    result = await db.execute(select(Device).where(Device.device_id == device_id))
    return result.scalar_one_or_none()


def get_presented_secret(request: Request) -> Optional[str]:
    return request.headers.get(DEVICE_SECRET_HEADER)


def check_device_secret(device: Device, presented_secret: Optional[str]) -> None:
    """Provisioned devices must present their secret"""
    if not device.is_provisioned:
        return
    if not verify_device_secret(presented_secret, device.secret_hash):
        logger.warning(f"Rejected request for device {device.device_id}: bad or missing secret")
        raise PermissionDenied("Invalid device credentials")


async def get_device_from_secret(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Device:
    """Secret-based gate; resolves the calling device row"""
    device_id = await extract_device_id(request)
    if not device_id:
        raise AuthenticationError("Device identifier required", error_code="DEVICE_ID_REQUIRED")

    device = await get_device_by_hardware_id(db, device_id)
    if device is None:
        raise NotFoundError("Device not registered")

    check_device_secret(device, get_presented_secret(request))
    return device


async def get_device_identity(token: str = Depends(get_bearer_token)) -> DeviceIdentity:
    """Token-based gate; no database lookup"""
    payload = verify_token(token, TokenType.DEVICE)

    device_id = payload.get("device_id")
    school_id = payload.get("school_id")
    if not device_id or school_id is None:
        raise TokenError("Invalid device token")

    return DeviceIdentity(device_id=device_id, school_id=int(school_id))


async def get_registered_device(
    identity: DeviceIdentity = Depends(get_device_identity),
    db: AsyncSession = Depends(get_db)
) -> Device:
    """Token-based gate followed by a lookup of the device row"""
    device = await get_device_by_hardware_id(db, identity.device_id)
    if device is None:
        raise NotFoundError("Device not registered")
    if device.school_id != identity.school_id:
        logger.warning(
            f"Device token for {identity.device_id} names school {identity.school_id}, "
            f"device belongs to {device.school_id}"
        )
        raise TokenError("Invalid device token")
    return device
