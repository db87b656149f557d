from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.device_auth import check_device_secret, get_device_by_hardware_id
from app.core.errors import ConflictError, DatabaseError, NotFoundError, PermissionDenied, ValidationError
from app.core.logging import logger
from app.core.security import create_device_token, generate_device_secret, hash_device_secret
from app.core.tenant import (
    ensure_classroom_in_school,
    get_effective_school_id,
    require_school_id,
    restrict_to_teacher_classrooms,
)
from app.models.air_quality import AirQuality
from app.models.attendance import Attendance
from app.models.device import Device
from app.models.school import School
from app.models.user import User
from app.schemas.device.requests import (
    DeviceConnectRequest,
    DeviceCreate,
    DeviceStatusRequest,
    DeviceUpdate,
    HeartbeatRequest,
)
from app.schemas.enums import DeviceStatus, DeviceType
from app.services.base_service import BaseService
from app.utils.time import utcnow


class DeviceService(BaseService):

    async def list_devices(
        self,
        user: User,
        status: Optional[str] = None,
        school_id: Optional[int] = None
    ) -> List[Device]:
        effective_school_id = get_effective_school_id(user, school_id)

        query = select(Device)
        if effective_school_id is not None:
            query = query.where(Device.school_id == effective_school_id)

        if status and status.lower() != "all":
            try:
                query = query.where(Device.status == DeviceStatus(status.upper()))
            except ValueError:
                logger.debug(f"Ignoring unknown device status filter {status!r}")

        classroom_ids = await restrict_to_teacher_classrooms(self.db, user)
        if classroom_ids is not None:
            if not classroom_ids:
                return []
            query = query.where(Device.classroom_id.in_(classroom_ids))

        result = await self.db.execute(query.order_by(Device.name, Device.id))
        return list(result.scalars().all())

    async def get_device_for_user(self, user: User, device_pk: int) -> Device:
        result = await self.db.execute(
            select(Device)
            .options(selectinload(Device.classroom))
            .where(Device.id == device_pk)
        )
        device = result.scalar_one_or_none()
        if device is None:
            raise NotFoundError("Device not found")
        if not user.is_platform_admin and device.school_id != get_effective_school_id(user):
            raise PermissionDenied("Device belongs to another school")
        return device

    async def get_device_detail(self, user: User, device_pk: int) -> dict:
        device = await self.get_device_for_user(user, device_pk)

        attendance = await self.db.execute(
            select(Attendance)
            .where(Attendance.device_id == device.id)
            .order_by(Attendance.check_in_time.desc())
            .limit(10)
        )
        readings = await self.db.execute(
            select(AirQuality)
            .where(AirQuality.device_id == device.id)
            .order_by(AirQuality.timestamp.desc())
            .limit(24)
        )
        return {
            "device": device,
            "recent_attendance": list(attendance.scalars().all()),
            "recent_air_quality": list(readings.scalars().all()),
        }

    async def _ensure_unique_hardware_id(self, device_id: str, error_class=ConflictError) -> None:
        if await get_device_by_hardware_id(self.db, device_id) is not None:
            raise error_class("Device ID already exists")

    async def create_device(self, user: User, data: DeviceCreate) -> Device:
        school_id = require_school_id(user, data.school_id)
        await ensure_classroom_in_school(self.db, data.classroom_id, school_id)
        await self._ensure_unique_hardware_id(data.device_id, ValidationError)

        device = Device(
            device_id=data.device_id,
            name=data.name,
            type=data.type,
            location=data.location,
            school_id=school_id,
            classroom_id=data.classroom_id,
            status=DeviceStatus.OFFLINE,
            firmware_version=data.firmware_version or settings.DEVICE_DEFAULT_FIRMWARE,
        )
        self.db.add(device)
        await self.db.commit()
        await self.db.refresh(device)
        logger.info(f"Device {device.device_id} created in school {school_id} by user {user.id}")
        return device

    async def update_device(self, user: User, device_pk: int, data: DeviceUpdate) -> Device:
        device = await self.get_device_for_user(user, device_pk)
        changes = data.model_dump(exclude_unset=True)

        if "classroom_id" in changes:
            await ensure_classroom_in_school(self.db, changes["classroom_id"], device.school_id)

        for field, value in changes.items():
            setattr(device, field, value)
        device.last_seen = utcnow()

        await self.db.commit()
        await self.db.refresh(device)
        return device

    async def delete_device(self, user: User, device_pk: int) -> None:
        device = await self.get_device_for_user(user, device_pk)
        await self.db.delete(device)
        await self.db.commit()
        logger.info(f"Device {device.device_id} deleted by user {user.id}")

    def _issue_credentials(self, device: Device, rotate_secret: bool) -> Tuple[str, Optional[str]]:
        secret = None
        if rotate_secret:
            secret = generate_device_secret()
            device.secret_hash = hash_device_secret(secret)
        return create_device_token(device.device_id, device.school_id), secret

    async def register_device(self, user: User, data: DeviceCreate) -> Tuple[Device, str, str]:
        """Create a device and hand out its token and secret"""
        school_id = require_school_id(user, data.school_id)
        await ensure_classroom_in_school(self.db, data.classroom_id, school_id)
        await self._ensure_unique_hardware_id(data.device_id)

        device = Device(
            device_id=data.device_id,
            name=data.name,
            type=data.type,
            location=data.location,
            school_id=school_id,
            classroom_id=data.classroom_id,
            status=DeviceStatus.OFFLINE,
            firmware_version=data.firmware_version or settings.DEVICE_DEFAULT_FIRMWARE,
        )
        self.db.add(device)
        await self.db.flush()
        token, secret = self._issue_credentials(device, rotate_secret=True)
        self.log_action(
            "DEVICE_REGISTERED",
            school_id=school_id,
            actor=user,
            details={"device_id": device.device_id, "type": device.type.value}
        )
        await self.db.commit()
        await self.db.refresh(device)
        logger.info(f"Device {device.device_id} registered in school {school_id}")
        return device, token, secret

    async def _get_school_device(self, user: User, device_id: str) -> Device:
        device = await get_device_by_hardware_id(self.db, device_id)
        if device is None:
            raise NotFoundError("Device not registered")
        if not user.is_platform_admin and device.school_id != get_effective_school_id(user):
            raise PermissionDenied("Device belongs to another school")
        return device

    async def connect_device(self, user: User, data: DeviceConnectRequest) -> Tuple[Device, str, str]:
        """Adopt an existing device, optionally remap it, and rotate its secret"""
        device = await self._get_school_device(user, data.device_id)

        if data.classroom_id is not None:
            await ensure_classroom_in_school(self.db, data.classroom_id, device.school_id)
            device.classroom_id = data.classroom_id
        if data.name:
            device.name = data.name
        if data.location is not None:
            device.location = data.location

        token, secret = self._issue_credentials(device, rotate_secret=True)
        self.log_action(
            "DEVICE_CONNECTED",
            school_id=device.school_id,
            actor=user,
            details={"device_id": device.device_id, "classroom_id": device.classroom_id}
        )
        await self.db.commit()
        await self.db.refresh(device)
        return device, token, secret

    async def provision_device(self, user: User, device_id: str) -> Tuple[Device, str]:
        """Issue a fresh device token; the stored secret is untouched"""
        device = await self._get_school_device(user, device_id)
        token, _ = self._issue_credentials(device, rotate_secret=False)
        logger.info(f"Issued device token for {device.device_id} by user {user.id}")
        return device, token

    async def _apply_heartbeat(self, device: Device, data: HeartbeatRequest) -> Device:
        if data.classroom_id is not None:
            await ensure_classroom_in_school(self.db, data.classroom_id, device.school_id)
            device.classroom_id = data.classroom_id

        device.battery = data.battery
        device.signal = data.signal
        if data.uptime is not None:
            device.uptime = data.uptime
        if data.location is not None:
            device.location = data.location
        device.status = data.status or DeviceStatus.ONLINE
        device.last_seen = utcnow()

        await self.db.commit()
        await self.db.refresh(device)
        return device

    async def heartbeat(self, device: Device, data: HeartbeatRequest) -> Device:
        """Heartbeat from an already authenticated device"""
        return await self._apply_heartbeat(device, data)

    async def _resolve_hint_school(self, data: DeviceStatusRequest) -> School:
        school = None
        if data.school_id is not None:
            school = await self.db.get(School, data.school_id)
        elif data.school_code:
            result = await self.db.execute(select(School).where(School.code == data.school_code.strip()))
            school = result.scalar_one_or_none()
        else:
            raise ValidationError("School context is required for device registration")

        if school is None:
            raise NotFoundError("School not found")
        return school

    async def report_status(
        self,
        data: DeviceStatusRequest,
        presented_secret: Optional[str] = None
    ) -> Tuple[Device, bool]:
        """
        Permissive status report keyed by hardware id.

        Known devices are updated (provisioned ones only with their secret).
        Unknown devices are created only when auto-registration is enabled.
        Returns the device and whether it was created.
        """
        device = await get_device_by_hardware_id(self.db, data.device_id)
        if device is not None:
            check_device_secret(device, presented_secret)
            return await self._apply_heartbeat(device, data), False

        if not settings.DEVICE_AUTO_REGISTRATION:
            raise NotFoundError("Device not registered")

        school = await self._resolve_hint_school(data)
        await ensure_classroom_in_school(self.db, data.classroom_id, school.id)

        device = Device(
            device_id=data.device_id,
            name=data.device_id,
            type=DeviceType.MULTI_SENSOR,
            firmware_version="unknown",
            school_id=school.id,
            classroom_id=data.classroom_id,
            location=data.location,
            battery=data.battery,
            signal=data.signal,
            uptime=data.uptime,
            status=data.status or DeviceStatus.ONLINE,
            last_seen=utcnow(),
        )
        self.db.add(device)
        self.log_action(
            "DEVICE_AUTO_REGISTERED",
            school_id=school.id,
            details={"device_id": data.device_id}
        )
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # Another heartbeat registered the same hardware id first
            await self.db.rollback()
            device = await get_device_by_hardware_id(self.db, data.device_id)
            if device is None:
                logger.error(f"Auto-registration of {data.device_id} rejected: {exc.orig}")
                raise DatabaseError("Could not register device") from exc
            check_device_secret(device, presented_secret)
            return await self._apply_heartbeat(device, data), False

        await self.db.refresh(device)
        logger.warning(f"Auto-registered unknown device {device.device_id} in school {school.code}")
        return device, True
