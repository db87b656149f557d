from .requests import AttendanceCreate, DeviceAttendanceCreate
from .responses import (
    AttendanceResponse,
    AttendanceStudent,
    AttendanceDevice,
    AttendanceStats
)
