from sqlalchemy import Column, Integer, Float, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func

from .base import TenantModel
from app.schemas.enums import AlertType, AlertSeverity


class Alert(TenantModel):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Enum(AlertType, name="alert_type"), nullable=False)
    severity = Column(Enum(AlertSeverity, name="alert_severity"), nullable=False)
    message = Column(String, nullable=False)
    room = Column(String, nullable=True)
    metric = Column(String, nullable=True)
    value = Column(Float, nullable=True)
    threshold = Column(Float, nullable=True)
    resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Alert(id={self.id}, type={self.type}, severity={self.severity})>"
