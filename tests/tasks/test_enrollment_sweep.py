from datetime import timedelta

import pytest

from app.core.config import settings
from app.models import FingerprintEnrollment
from app.schemas.enums import EnrollmentStatus
from app.tasks import create_scheduler, run_enrollment_sweep
from app.tasks.enrollment_sweep import SWEEP_JOB_ID
from app.utils.time import utcnow


async def seed_capture(session_factory, world, claimed_minutes_ago):
    claimed_at = utcnow() - timedelta(minutes=claimed_minutes_ago)
    async with session_factory() as session:
        enrollment = FingerprintEnrollment(
            school_id=world.school.id,
            student_id=world.student_a.id,
            classroom_id=world.classroom_a.id,
            device_id=world.scanner.id,
            status=EnrollmentStatus.CAPTURING,
            claimed_at=claimed_at,
            created_at=claimed_at,
        )
        session.add(enrollment)
        await session.commit()
        return enrollment.id


@pytest.mark.asyncio
async def test_sweep_reclaims_stale_capture(school_world, session_factory):
    enrollment_id = await seed_capture(session_factory, school_world, claimed_minutes_ago=30)

    reclaimed = await run_enrollment_sweep(session_factory, timeout_minutes=10)

    assert reclaimed == [enrollment_id]
    async with session_factory() as session:
        stored = await session.get(FingerprintEnrollment, enrollment_id)
    assert stored.status == EnrollmentStatus.PENDING
    assert stored.device_id is None


@pytest.mark.asyncio
async def test_sweep_uses_configured_timeout(school_world, session_factory, monkeypatch):
    monkeypatch.setattr(settings, "ENROLLMENT_CAPTURE_TIMEOUT_MINUTES", 60)
    await seed_capture(session_factory, school_world, claimed_minutes_ago=30)

    assert await run_enrollment_sweep(session_factory) == []


@pytest.mark.asyncio
async def test_sweep_swallows_errors(monkeypatch):
    def broken_factory():
        raise RuntimeError("database unavailable")

    assert await run_enrollment_sweep(broken_factory, timeout_minutes=10) == []


def test_scheduler_disabled(monkeypatch):
    monkeypatch.setattr(settings, "ENROLLMENT_SWEEP_ENABLED", False)

    assert create_scheduler() is None


def test_scheduler_registers_sweep_job(monkeypatch):
    monkeypatch.setattr(settings, "ENROLLMENT_SWEEP_ENABLED", True)
    monkeypatch.setattr(settings, "ENROLLMENT_SWEEP_INTERVAL_MINUTES", 3)

    scheduler = create_scheduler()
    job = scheduler.get_job(SWEEP_JOB_ID)

    assert job is not None
    assert job.trigger.interval == timedelta(minutes=3)
    assert job.max_instances == 1
