from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.logging import logger


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_zone(name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r}, falling back to UTC")
        return ZoneInfo("UTC")


def local_day_bounds(moment: datetime, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """UTC bounds of the school-local calendar day containing moment"""
    zone = get_zone(tz_name)
    local = moment.astimezone(zone)
    start = datetime.combine(local.date(), time.min, tzinfo=zone)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def date_bounds(day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    zone = get_zone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), (start + timedelta(days=1)).astimezone(timezone.utc)


def is_on_time(moment: datetime, cutoff: time, tz_name: Optional[str] = None) -> bool:
    """True when the school-local time of moment is at or before cutoff"""
    local = moment.astimezone(get_zone(tz_name))
    return (local.hour, local.minute) <= (cutoff.hour, cutoff.minute)
