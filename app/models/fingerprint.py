from sqlalchemy import Column, Integer, Text, String, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import TenantModel
from app.schemas.enums import EnrollmentStatus

ACTIVE_ENROLLMENT_CLAUSE = text("status IN ('PENDING', 'CAPTURING')")


class FingerprintEnrollment(TenantModel):
    __tablename__ = "fingerprint_enrollments"
    __table_args__ = (
        # At most one PENDING/CAPTURING enrollment per student
        Index(
            "uq_fingerprint_enrollments_active_student",
            "student_id",
            unique=True,
            postgresql_where=ACTIVE_ENROLLMENT_CLAUSE,
            sqlite_where=ACTIVE_ENROLLMENT_CLAUSE,
        ),
        Index("ix_fingerprint_enrollments_queue", "school_id", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True, index=True)
    # Device currently bound to the job; starts as the requested device, if any
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True, index=True)
    requested_device_id = Column(Integer, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        Enum(EnrollmentStatus, name="enrollment_status"),
        nullable=False,
        default=EnrollmentStatus.PENDING
    )
    template = Column(Text, nullable=True)
    failure_reason = Column(String, nullable=True)
    requested_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="enrollments")
    classroom = relationship("Classroom")
    device = relationship("Device", foreign_keys=[device_id])
    requester = relationship("User")

    @property
    def is_active(self) -> bool:
        return self.status in EnrollmentStatus.active()

    def __repr__(self):
        return (
            f"<FingerprintEnrollment(id={self.id}, student_id={self.student_id}, "
            f"status={self.status})>"
        )
