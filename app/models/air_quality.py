from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import TenantModel


class AirQuality(TenantModel):
    __tablename__ = "air_quality_readings"
    __table_args__ = (
        Index("ix_air_quality_school_room_time", "school_id", "room", "timestamp"),
    )

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True, index=True)
    room = Column(String, nullable=False)
    pm25 = Column(Float, nullable=False)
    co2 = Column(Float, nullable=False)
    temperature = Column(Float, nullable=False)
    humidity = Column(Float, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    device = relationship("Device")
    classroom = relationship("Classroom")

    def __repr__(self):
        return f"<AirQuality(id={self.id}, room={self.room}, co2={self.co2}, pm25={self.pm25})>"
