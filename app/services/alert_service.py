from typing import List, Optional

from sqlalchemy import select

from app.core.errors import NotFoundError, PermissionDenied
from app.core.logging import logger
from app.core.tenant import get_effective_school_id
from app.models.alert import Alert
from app.models.user import User
from app.schemas.enums import AlertSeverity, AlertType
from app.services.base_service import BaseService


class AlertService(BaseService):

    async def list_alerts(
        self,
        user: User,
        resolved: Optional[bool] = None,
        severity: Optional[str] = None,
        alert_type: Optional[str] = None,
        limit: int = 50,
        school_id: Optional[int] = None
    ) -> List[Alert]:
        effective_school_id = get_effective_school_id(user, school_id)

        query = select(Alert)
        if effective_school_id is not None:
            query = query.where(Alert.school_id == effective_school_id)
        if resolved is not None:
            query = query.where(Alert.resolved == resolved)
        if severity:
            try:
                query = query.where(Alert.severity == AlertSeverity(severity.upper()))
            except ValueError:
                logger.debug(f"Ignoring unknown alert severity filter {severity!r}")
        if alert_type:
            try:
                query = query.where(Alert.type == AlertType(alert_type.upper()))
            except ValueError:
                logger.debug(f"Ignoring unknown alert type filter {alert_type!r}")

        result = await self.db.execute(query.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit))
        return list(result.scalars().all())

    async def _get_alert(self, user: User, alert_id: int) -> Alert:
        alert = await self.db.get(Alert, alert_id)
        if alert is None:
            raise NotFoundError("Alert not found")
        if not user.is_platform_admin and alert.school_id != get_effective_school_id(user):
            raise PermissionDenied("Alert belongs to another school")
        return alert

    async def resolve_alert(self, user: User, alert_id: int) -> Alert:
        alert = await self._get_alert(user, alert_id)
        alert.resolved = True
        await self.db.commit()
        await self.db.refresh(alert)
        return alert

    async def delete_alert(self, user: User, alert_id: int) -> None:
        alert = await self._get_alert(user, alert_id)
        await self.db.delete(alert)
        await self.db.commit()
