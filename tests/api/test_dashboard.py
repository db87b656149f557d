from datetime import datetime, timezone

import pytest

from app.models import AirQuality, Alert, Attendance, FingerprintEnrollment
from app.schemas.enums import AlertSeverity, AlertType, AttendanceStatus, DeviceStatus, EnrollmentStatus
from app.utils.time import utcnow
from tests.factories import auth_headers


@pytest.mark.asyncio
async def test_dashboard_stats(client, school_world, db_session):
    """
    Scenario: one of two students checked in today, one scanner is online,
    one alert is open and one enrollment is pending.
    Expectation: the dashboard reflects each count for the school only.
    """
    now = utcnow()
    school_world.scanner.status = DeviceStatus.ONLINE
    db_session.add_all([
        school_world.scanner,
        Attendance(
            school_id=school_world.school.id,
            student_id=school_world.student_a.id,
            classroom_id=school_world.classroom_a.id,
            check_in_time=now,
            status=AttendanceStatus.LATE,
        ),
        Alert(
            school_id=school_world.school.id,
            type=AlertType.AIR_QUALITY,
            severity=AlertSeverity.WARNING,
            message="Grade 4A CO₂ level exceeded threshold (850 ppm)",
        ),
        FingerprintEnrollment(
            school_id=school_world.school.id,
            student_id=school_world.student_b.id,
            classroom_id=school_world.classroom_b.id,
            status=EnrollmentStatus.PENDING,
            created_at=now,
        ),
        AirQuality(
            school_id=school_world.school.id,
            room="Grade 4A",
            pm25=10,
            co2=850,
            temperature=23,
            humidity=40,
            timestamp=now,
        ),
    ])
    await db_session.commit()

    response = await client.get("/api/dashboard/stats", headers=auth_headers(school_world.admin))
    other = await client.get("/api/dashboard/stats", headers=auth_headers(school_world.other_admin))

    assert response.status_code == 200
    body = response.json()
    assert body["attendance"] == {
        "total_students": 2,
        "present": 0,
        "late": 1,
        "absent": 1,
        "attendance_rate": 50.0,
    }
    assert body["devices"] == {"total": 2, "online": 1, "offline": 1}
    assert body["open_alerts"] == 1
    assert body["pending_enrollments"] == 1
    assert body["latest_air_quality"]["co2"] == 850

    assert other.json()["attendance"]["total_students"] == 1
    assert other.json()["open_alerts"] == 0
    assert other.json()["latest_air_quality"] is None


@pytest.mark.asyncio
async def test_teacher_dashboard_is_classroom_scoped(client, school_world):
    response = await client.get("/api/dashboard/stats", headers=auth_headers(school_world.teacher))

    assert response.json()["attendance"]["total_students"] == 1
    assert response.json()["devices"]["total"] == 1


@pytest.mark.asyncio
async def test_attendance_report(client, school_world, db_session):
    rows = [
        (school_world.student_a, datetime(2026, 3, 2, 7, 30, tzinfo=timezone.utc), AttendanceStatus.PRESENT),
        (school_world.student_a, datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc), AttendanceStatus.LATE),
        (school_world.student_b, datetime(2026, 3, 3, 7, 0, tzinfo=timezone.utc), AttendanceStatus.PRESENT),
        (school_world.student_b, datetime(2026, 3, 9, 7, 0, tzinfo=timezone.utc), AttendanceStatus.PRESENT),
    ]
    for student, moment, status in rows:
        db_session.add(Attendance(
            school_id=school_world.school.id,
            student_id=student.id,
            classroom_id=student.classroom_id,
            check_in_time=moment,
            status=status,
        ))
    await db_session.commit()

    params = {"start_date": "2026-03-02", "end_date": "2026-03-03"}
    response = await client.get("/api/reports/attendance", params=params, headers=auth_headers(school_world.admin))
    teacher = await client.get("/api/reports/attendance", params=params, headers=auth_headers(school_world.teacher))
    backwards = await client.get(
        "/api/reports/attendance",
        params={"start_date": "2026-03-03", "end_date": "2026-03-02"},
        headers=auth_headers(school_world.admin)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == {
        "total_records": 3,
        "present": 2,
        "late": 1,
        "absent": 0,
        "attendance_rate": 100.0,
    }
    assert [(row["student_id"], row["total"]) for row in body["by_student"]] == [("STU-001", 2), ("STU-002", 1)]
    assert [row["student_id"] for row in teacher.json()["by_student"]] == ["STU-001"]
    assert backwards.status_code == 400
