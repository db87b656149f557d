from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, Enum, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import TenantModel
from app.schemas.enums import AttendanceStatus


class Attendance(TenantModel):
    __tablename__ = "attendances"
    __table_args__ = (
        Index("ix_attendances_student_check_in", "student_id", "check_in_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True, index=True)
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    check_in_time = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(Enum(AttendanceStatus, name="attendance_status"), nullable=False)
    fingerprint_match = Column(Boolean, nullable=False, default=False)
    reliability = Column(Float, nullable=False, default=98)

    student = relationship("Student", back_populates="attendances")
    classroom = relationship("Classroom")
    device = relationship("Device")
    teacher = relationship("User")

    def __repr__(self):
        return f"<Attendance(id={self.id}, student_id={self.student_id}, status={self.status})>"
