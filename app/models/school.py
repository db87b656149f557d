from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base
from app.schemas.enums import SchoolStatus


class School(Base):
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, unique=True, nullable=False, index=True)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    timezone = Column(String, nullable=False, default="UTC")
    status = Column(Enum(SchoolStatus, name="school_status"), nullable=False, default=SchoolStatus.ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="school")
    classrooms = relationship("Classroom", back_populates="school")
    students = relationship("Student", back_populates="school")
    devices = relationship("Device", back_populates="school")

    def __repr__(self):
        return f"<School(id={self.id}, code={self.code}, name={self.name})>"
