from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func

from .base import Base


class SystemLog(Base):
    """Append-only audit trail of administrative actions"""
    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String, nullable=False)
    actor_id = Column(Integer, nullable=True)
    actor_role = Column(String, nullable=True)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<SystemLog(id={self.id}, action={self.action})>"
