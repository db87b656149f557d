from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import TenantModel


class Classroom(TenantModel):
    __tablename__ = "classrooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    grade = Column(String, nullable=True)
    section = Column(String, nullable=True)
    capacity = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    school = relationship("School", back_populates="classrooms")
    students = relationship("Student", back_populates="classroom")
    devices = relationship("Device", back_populates="classroom")
    teacher_assignments = relationship(
        "TeacherClassAssignment",
        back_populates="classroom",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Classroom(id={self.id}, name={self.name}, school_id={self.school_id})>"


class TeacherClassAssignment(TenantModel):
    __tablename__ = "teacher_class_assignments"
    __table_args__ = (
        UniqueConstraint("teacher_id", "classroom_id", name="uq_teacher_classroom"),
    )

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    teacher = relationship("User", back_populates="classroom_assignments")
    classroom = relationship("Classroom", back_populates="teacher_assignments")

    def __repr__(self):
        return f"<TeacherClassAssignment(teacher_id={self.teacher_id}, classroom_id={self.classroom_id})>"
