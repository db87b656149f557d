from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, func, select

from app.core.config import get_air_quality_thresholds
from app.core.errors import NotFoundError, ValidationError
from app.core.logging import logger
from app.core.tenant import (
    ensure_classroom_in_school,
    get_effective_school_id,
    require_school_id,
    restrict_to_teacher_classrooms,
)
from app.models.air_quality import AirQuality
from app.models.alert import Alert
from app.models.classroom import Classroom
from app.models.device import Device
from app.models.user import User
from app.schemas.air_quality.requests import AirQualityCreate, DeviceAirQualityCreate
from app.schemas.enums import AlertSeverity, AlertType
from app.services.base_service import BaseService
from app.utils.time import utcnow

UNASSIGNED_ROOM = "Unassigned"


def classify_quality(reading: Optional[AirQuality]) -> str:
    if reading is None:
        return "Unknown"
    if reading.pm25 < 35 and reading.co2 < 750:
        return "Good"
    if reading.pm25 < 55 and reading.co2 < 1000:
        return "Moderate"
    return "Poor"


def build_threshold_alerts(school_id: int, room: str, co2: float, pm25: float) -> List[Alert]:
    """Alerts for a single reading; at most one per metric"""
    limits = get_air_quality_thresholds()
    alerts = []

    if co2 > limits["co2_warning"]:
        critical = co2 > limits["co2_critical"]
        alerts.append(Alert(
            school_id=school_id,
            type=AlertType.AIR_QUALITY,
            severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
            message=f"{room} CO₂ level {'critical' if critical else 'exceeded threshold'} ({co2:g} ppm)",
            room=room,
            metric="co2",
            value=co2,
            threshold=limits["co2_critical"] if critical else limits["co2_warning"],
        ))

    if pm25 > limits["pm25_warning"]:
        critical = pm25 > limits["pm25_critical"]
        alerts.append(Alert(
            school_id=school_id,
            type=AlertType.AIR_QUALITY,
            severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
            message=f"{room} PM2.5 level {'critical' if critical else 'exceeded threshold'} ({pm25:.1f} µg/m³)",
            room=room,
            metric="pm25",
            value=pm25,
            threshold=limits["pm25_critical"] if critical else limits["pm25_warning"],
        ))

    return alerts


class AirQualityService(BaseService):

    async def _scope_conditions(
        self,
        user: User,
        school_id: Optional[int],
        classroom_id: Optional[int] = None
    ) -> Optional[list]:
        """WHERE clauses for the caller's view, or None when it is empty"""
        conditions = []
        effective_school_id = get_effective_school_id(user, school_id)
        if effective_school_id is not None:
            conditions.append(AirQuality.school_id == effective_school_id)

        classroom_ids = await restrict_to_teacher_classrooms(self.db, user, classroom_id)
        if classroom_ids is not None:
            if not classroom_ids:
                return None
            conditions.append(AirQuality.classroom_id.in_(classroom_ids))
        return conditions

    async def list_readings(
        self,
        user: User,
        room: Optional[str] = None,
        classroom_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        school_id: Optional[int] = None
    ) -> List[AirQuality]:
        conditions = await self._scope_conditions(user, school_id, classroom_id)
        if conditions is None:
            return []

        if room:
            conditions.append(AirQuality.room == room)
        if start is not None:
            conditions.append(AirQuality.timestamp >= start)
        if end is not None:
            conditions.append(AirQuality.timestamp <= end)

        result = await self.db.execute(
            select(AirQuality)
            .where(*conditions)
            .order_by(AirQuality.timestamp.desc(), AirQuality.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def room_summaries(self, user: User, school_id: Optional[int] = None) -> List[dict]:
        conditions = await self._scope_conditions(user, school_id)
        if conditions is None:
            return []

        latest_ids = (
            select(func.max(AirQuality.id).label("id"))
            .where(*conditions)
            .group_by(AirQuality.room)
            .subquery()
        )
        latest = await self.db.execute(
            select(AirQuality).join(latest_ids, AirQuality.id == latest_ids.c.id).order_by(AirQuality.room)
        )

        since = utcnow() - timedelta(hours=24)
        averages = await self.db.execute(
            select(
                AirQuality.room,
                func.avg(AirQuality.pm25),
                func.avg(AirQuality.co2),
                func.avg(AirQuality.temperature),
                func.avg(AirQuality.humidity),
            )
            .where(*conditions, AirQuality.timestamp >= since)
            .group_by(AirQuality.room)
        )
        averages_by_room = {
            room: {
                "pm25": round(pm25, 1) if pm25 is not None else None,
                "co2": round(co2) if co2 is not None else None,
                "temperature": round(temperature, 1) if temperature is not None else None,
                "humidity": round(humidity) if humidity is not None else None,
            }
            for room, pm25, co2, temperature, humidity in averages.all()
        }

        return [
            {
                "room": reading.room,
                "current": reading,
                "averages": averages_by_room.get(reading.room, {}),
                "quality": classify_quality(reading),
            }
            for reading in latest.scalars().all()
        ]

    async def get_stats(
        self,
        user: User,
        room: Optional[str] = None,
        hours: int = 24,
        school_id: Optional[int] = None
    ) -> dict:
        empty = {"avg": None, "max": None, "min": None}
        conditions = await self._scope_conditions(user, school_id)
        if conditions is None:
            return {"pm25": empty, "co2": empty, "temperature": empty, "humidity": empty, "count": 0}

        conditions.append(AirQuality.timestamp >= utcnow() - timedelta(hours=hours))
        if room:
            conditions.append(AirQuality.room == room)

        metrics = ("pm25", "co2", "temperature", "humidity")
        columns = [func.count(AirQuality.id)]
        for metric in metrics:
            column = getattr(AirQuality, metric)
            columns.extend([func.avg(column), func.max(column), func.min(column)])

        row = (await self.db.execute(select(*columns).where(*conditions))).one()
        stats = {"count": row[0]}
        for index, metric in enumerate(metrics):
            avg, maximum, minimum = row[1 + index * 3: 4 + index * 3]
            stats[metric] = {
                "avg": round(avg, 1) if avg is not None else None,
                "max": maximum,
                "min": minimum,
            }
        return stats

    async def _store(
        self,
        school_id: int,
        room: str,
        pm25: float,
        co2: float,
        temperature: float,
        humidity: float,
        device_id: Optional[int] = None,
        classroom_id: Optional[int] = None
    ) -> AirQuality:
        reading = AirQuality(
            school_id=school_id,
            device_id=device_id,
            classroom_id=classroom_id,
            room=room,
            pm25=pm25,
            co2=co2,
            temperature=temperature,
            humidity=humidity,
            timestamp=utcnow(),
        )
        alerts = build_threshold_alerts(school_id, room, co2, pm25)

        async with self.transaction():
            self.db.add(reading)
            self.db.add_all(alerts)

        if alerts:
            logger.warning(f"{len(alerts)} air quality alert(s) raised for {room} in school {school_id}")
        await self.db.refresh(reading)
        return reading

    async def record_reading(self, user: User, data: AirQualityCreate) -> AirQuality:
        school_id = require_school_id(user, data.school_id)

        device = None
        if data.device_id is not None:
            device = await self.db.get(Device, data.device_id)
            if device is None:
                raise NotFoundError("Device not found")
            if device.school_id != school_id:
                raise ValidationError("Device not found for this school")

        classroom_id = data.classroom_id or (device.classroom_id if device else None)
        await ensure_classroom_in_school(self.db, classroom_id, school_id)

        return await self._store(
            school_id,
            data.room.strip(),
            data.pm25,
            data.co2,
            data.temperature,
            data.humidity,
            device_id=device.id if device else None,
            classroom_id=classroom_id,
        )

    async def record_device_reading(self, device: Device, data: DeviceAirQualityCreate) -> AirQuality:
        room = data.room.strip() if data.room and data.room.strip() else None
        if room is None and device.classroom_id is not None:
            classroom = await self.db.get(Classroom, device.classroom_id)
            room = classroom.name if classroom else None
        room = room or device.location or UNASSIGNED_ROOM

        return await self._store(
            device.school_id,
            room,
            data.pm25,
            data.co2,
            data.temperature,
            data.humidity,
            device_id=device.id,
            classroom_id=device.classroom_id,
        )
