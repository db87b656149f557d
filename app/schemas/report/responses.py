from datetime import date
from typing import List, Optional

from pydantic import BaseModel


class ReportSummary(BaseModel):
    total_records: int
    present: int
    late: int
    absent: int
    attendance_rate: float


class StudentReportRow(BaseModel):
    student_id: str
    name: str
    class_name: Optional[str] = None
    present: int
    late: int
    absent: int
    total: int


class AttendanceReport(BaseModel):
    start_date: date
    end_date: date
    summary: ReportSummary
    by_student: List[StudentReportRow] = []
