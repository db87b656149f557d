from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import TenantModel


class Student(TenantModel):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    # Human-facing identifier printed on cards and typed at scanners
    student_id = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    class_name = Column(String, nullable=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True, index=True)
    fingerprint_data = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    school = relationship("School", back_populates="students")
    classroom = relationship("Classroom", back_populates="students")
    attendances = relationship("Attendance", back_populates="student", cascade="all, delete-orphan")
    enrollments = relationship("FingerprintEnrollment", back_populates="student", cascade="all, delete-orphan")

    @property
    def has_fingerprint(self) -> bool:
        return bool(self.fingerprint_data)

    def __repr__(self):
        return f"<Student(id={self.id}, student_id={self.student_id}, name={self.name})>"
