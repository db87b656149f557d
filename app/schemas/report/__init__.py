from .responses import AttendanceReport, ReportSummary, StudentReportRow
