from .responses import AttendanceToday, DeviceCounts, DashboardStats
