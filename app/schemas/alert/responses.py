from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.enums import AlertSeverity, AlertType


class AlertResponse(BaseModel):
    id: int
    school_id: int
    type: AlertType
    severity: AlertSeverity
    message: str
    room: Optional[str] = None
    metric: Optional[str] = None
    value: Optional[float] = None
    threshold: Optional[float] = None
    resolved: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
