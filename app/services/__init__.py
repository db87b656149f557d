from .auth_service import AuthService
from .school_service import SchoolService
from .classroom_service import ClassroomService
from .student_service import StudentService
from .device_service import DeviceService
from .fingerprint_service import FingerprintService
from .attendance_service import AttendanceService
from .air_quality_service import AirQualityService
from .alert_service import AlertService
from .dashboard_service import DashboardService
from .report_service import ReportService
from .admin_service import AdminService

__all__ = [
    "AuthService",
    "SchoolService",
    "ClassroomService",
    "StudentService",
    "DeviceService",
    "FingerprintService",
    "AttendanceService",
    "AirQualityService",
    "AlertService",
    "DashboardService",
    "ReportService",
    "AdminService",
]
