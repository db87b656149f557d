from enum import Enum


class UserRoleEnum(str, Enum):
    PLATFORM_ADMIN = "PLATFORM_ADMIN"
    SCHOOL_ADMIN = "SCHOOL_ADMIN"
    TEACHER = "TEACHER"
    STAFF = "STAFF"


class SchoolStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class DeviceType(str, Enum):
    FINGERPRINT_SCANNER = "FINGERPRINT_SCANNER"
    MULTI_SENSOR = "MULTI_SENSOR"
    AIR_QUALITY_SENSOR = "AIR_QUALITY_SENSOR"


class DeviceStatus(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    MAINTENANCE = "MAINTENANCE"


class EnrollmentStatus(str, Enum):
    PENDING = "PENDING"
    CAPTURING = "CAPTURING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @classmethod
    def active(cls):
        return (cls.PENDING, cls.CAPTURING)


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"


class AlertType(str, Enum):
    AIR_QUALITY = "AIR_QUALITY"
    DEVICE = "DEVICE"
    ATTENDANCE = "ATTENDANCE"
    SYSTEM = "SYSTEM"


class AlertSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
