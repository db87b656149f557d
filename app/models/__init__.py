from .base import Base, TenantModel
from .school import School
from .user import User
from .classroom import Classroom, TeacherClassAssignment
from .student import Student
from .device import Device
from .fingerprint import FingerprintEnrollment
from .attendance import Attendance
from .air_quality import AirQuality
from .alert import Alert
from .system_log import SystemLog

__all__ = [
    "Base",
    "TenantModel",
    "School",
    "User",
    "Classroom",
    "TeacherClassAssignment",
    "Student",
    "Device",
    "FingerprintEnrollment",
    "Attendance",
    "AirQuality",
    "Alert",
    "SystemLog",
]
