# app/schemas/__init__.py

# Import enums
from .enums import (
    UserRoleEnum,
    SchoolStatus,
    DeviceType,
    DeviceStatus,
    EnrollmentStatus,
    AttendanceStatus,
    AlertType,
    AlertSeverity
)

# Import common schemas
from .common.error import ErrorResponse, FieldError, MessageResponse

# Import auth schemas
from .auth.requests import LoginRequest, SignupRequest
from .auth.responses import AuthResponse

# Import user and school schemas
from .user.requests import UserRoleUpdate
from .user.responses import (
    SchoolSummary,
    TeacherSummary,
    UserResponse,
    UserWithSchoolResponse
)
from .school.requests import SchoolCreate, SchoolUpdate
from .school.responses import SchoolResponse, SchoolWithCountsResponse

# Import classroom and student schemas
from .classroom.requests import ClassroomCreate, ClassroomUpdate, TeacherAssignmentRequest
from .classroom.responses import (
    ClassroomSummary,
    ClassroomResponse,
    ClassroomDetailResponse
)
from .student.requests import StudentCreate, StudentUpdate
from .student.responses import StudentResponse, StudentDetailResponse

# Import device schemas
from .device.requests import (
    DeviceCreate,
    DeviceUpdate,
    DeviceRegisterRequest,
    DeviceConnectRequest,
    DeviceProvisionRequest,
    HeartbeatRequest,
    DeviceStatusRequest
)
from .device.responses import (
    DeviceResponse,
    DeviceDetailResponse,
    DeviceCredentialsResponse
)

# Import fingerprint schemas
from .fingerprint.requests import EnrollmentCreate, EnrollmentComplete, EnrollmentFail
from .fingerprint.responses import EnrollmentResponse, ReclaimResponse

# Import attendance and air quality schemas
from .attendance.requests import AttendanceCreate, DeviceAttendanceCreate
from .attendance.responses import AttendanceResponse, AttendanceStats
from .air_quality.requests import AirQualityCreate, DeviceAirQualityCreate
from .air_quality.responses import AirQualityResponse, RoomSummary, AirQualityStats

# Import alert, dashboard, report and admin schemas
from .alert.responses import AlertResponse
from .dashboard.responses import DashboardStats
from .report.responses import AttendanceReport
from .admin.responses import PlatformOverview, SystemLogResponse

__all__ = [
    # Enums
    "UserRoleEnum",
    "SchoolStatus",
    "DeviceType",
    "DeviceStatus",
    "EnrollmentStatus",
    "AttendanceStatus",
    "AlertType",
    "AlertSeverity",

    # Common
    "ErrorResponse",
    "FieldError",
    "MessageResponse",

    # Auth
    "LoginRequest",
    "SignupRequest",
    "AuthResponse",

    # Users and schools
    "UserRoleUpdate",
    "SchoolSummary",
    "TeacherSummary",
    "UserResponse",
    "UserWithSchoolResponse",
    "SchoolCreate",
    "SchoolUpdate",
    "SchoolResponse",
    "SchoolWithCountsResponse",

    # Classrooms and students
    "ClassroomCreate",
    "ClassroomUpdate",
    "TeacherAssignmentRequest",
    "ClassroomSummary",
    "ClassroomResponse",
    "ClassroomDetailResponse",
    "StudentCreate",
    "StudentUpdate",
    "StudentResponse",
    "StudentDetailResponse",

    # Devices
    "DeviceCreate",
    "DeviceUpdate",
    "DeviceRegisterRequest",
    "DeviceConnectRequest",
    "DeviceProvisionRequest",
    "HeartbeatRequest",
    "DeviceStatusRequest",
    "DeviceResponse",
    "DeviceDetailResponse",
    "DeviceCredentialsResponse",

    # Fingerprint
    "EnrollmentCreate",
    "EnrollmentComplete",
    "EnrollmentFail",
    "EnrollmentResponse",
    "ReclaimResponse",

    # Attendance and air quality
    "AttendanceCreate",
    "DeviceAttendanceCreate",
    "AttendanceResponse",
    "AttendanceStats",
    "AirQualityCreate",
    "DeviceAirQualityCreate",
    "AirQualityResponse",
    "RoomSummary",
    "AirQualityStats",

    # Alerts, dashboard, reports, admin
    "AlertResponse",
    "DashboardStats",
    "AttendanceReport",
    "PlatformOverview",
    "SystemLogResponse",
]
