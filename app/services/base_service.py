# app/services/base_service.py
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.system_log import SystemLog


class BaseService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self):
        """Commit on success, roll back and re-raise on any error"""
        try:
            yield
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    def log_action(
        self,
        action: str,
        school_id: Optional[int] = None,
        actor=None,
        details: Optional[Dict[str, Any]] = None
    ) -> SystemLog:
        """Stage an audit row in the current transaction"""
        entry = SystemLog(
            action=action,
            school_id=school_id,
            actor_id=getattr(actor, "id", None),
            actor_role=getattr(getattr(actor, "role", None), "value", None),
            details=details or {}
        )
        self.db.add(entry)
        return entry
