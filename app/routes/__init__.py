from . import (
    admin,
    airquality,
    alerts,
    attendance,
    auth,
    classrooms,
    dashboard,
    devices,
    fingerprint,
    reports,
    students,
)

__all__ = [
    "admin",
    "airquality",
    "alerts",
    "attendance",
    "auth",
    "classrooms",
    "dashboard",
    "devices",
    "fingerprint",
    "reports",
    "students",
]
