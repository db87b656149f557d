from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import TenantModel
from app.schemas.enums import DeviceType, DeviceStatus


class Device(TenantModel):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    # Hardware identifier reported by the firmware
    device_id = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(Enum(DeviceType, name="device_type"), nullable=False)
    status = Column(Enum(DeviceStatus, name="device_status"), nullable=False, default=DeviceStatus.OFFLINE)
    location = Column(String, nullable=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True, index=True)
    battery = Column(Integer, nullable=True)
    signal = Column(Integer, nullable=True)
    uptime = Column(String, nullable=True)
    firmware_version = Column(String, nullable=True)
    last_seen = Column(DateTime(timezone=True), nullable=True)
    # SHA-256 of the provisioning secret; NULL until an admin provisions the device
    secret_hash = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    school = relationship("School", back_populates="devices")
    classroom = relationship("Classroom", back_populates="devices")

    @property
    def is_provisioned(self) -> bool:
        return self.secret_hash is not None

    def __repr__(self):
        return f"<Device(id={self.id}, device_id={self.device_id}, status={self.status})>"
