from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.errors import DatabaseError, PermissionDenied
from app.models import FingerprintEnrollment, SystemLog
from app.schemas.enums import EnrollmentStatus
from app.schemas.fingerprint import EnrollmentCreate
from app.services.fingerprint_service import FingerprintService
from app.utils.time import utcnow
from tests.factories import create_device


def make_enrollment(world, student, status=EnrollmentStatus.PENDING, **extra):
    return FingerprintEnrollment(
        school_id=world.school.id,
        student_id=student.id,
        classroom_id=student.classroom_id,
        status=status,
        created_at=utcnow(),
        **extra
    )


@pytest.mark.asyncio
async def test_only_one_active_enrollment_per_student(school_world, db_session):
    """
    Scenario: two PENDING rows are inserted for the same student.
    Expectation: the partial unique index rejects the second.
    """
    db_session.add(make_enrollment(school_world, school_world.student_a))
    await db_session.commit()

    db_session.add(make_enrollment(school_world, school_world.student_a, status=EnrollmentStatus.CAPTURING))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_finished_enrollments_do_not_block_new_ones(school_world, db_session):
    db_session.add(make_enrollment(school_world, school_world.student_a, status=EnrollmentStatus.FAILED))
    db_session.add(make_enrollment(school_world, school_world.student_a, status=EnrollmentStatus.COMPLETED))
    db_session.add(make_enrollment(school_world, school_world.student_a))
    await db_session.commit()

    result = await db_session.execute(select(FingerprintEnrollment))
    assert len(result.scalars().all()) == 3


@pytest.mark.asyncio
async def test_request_falls_back_to_concurrent_winner(school_world, session_factory, monkeypatch):
    """
    Scenario: another request inserts the active row between our check and our commit.
    Expectation: the unique violation is absorbed and the winner's row is returned.
    """
    async with session_factory() as session:
        winner = make_enrollment(school_world, school_world.student_a)
        session.add(winner)
        await session.commit()
        winner_id = winner.id

    original = FingerprintService.get_active_enrollment
    calls = {"count": 0}

    async def stale_first_lookup(self, student_id):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return await original(self, student_id)

    monkeypatch.setattr(FingerprintService, "get_active_enrollment", stale_first_lookup)

    async with session_factory() as session:
        service = FingerprintService(session)
        enrollment, created = await service.request_enrollment(
            school_world.admin, EnrollmentCreate(student_id=school_world.student_a.id)
        )

    assert created is False
    assert enrollment.id == winner_id
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_claim_is_compare_and_set(school_world, session_factory):
    """Two sessions racing on one job: only one claim succeeds"""
    async with session_factory() as session:
        session.add(make_enrollment(school_world, school_world.student_a))
        await session.commit()

    async with session_factory() as first_session:
        first = await FingerprintService(first_session).claim_next(school_world.scanner)
    async with session_factory() as second_session:
        second = await FingerprintService(second_session).claim_next(school_world.roaming_scanner)

    assert first is not None
    assert first.device_id == school_world.scanner.id
    assert second is None


@pytest.mark.asyncio
async def test_claim_orders_by_creation_time(school_world, session_factory):
    now = utcnow()
    async with session_factory() as session:
        newer = make_enrollment(school_world, school_world.student_a)
        newer.created_at = now
        older = make_enrollment(school_world, school_world.student_b)
        older.created_at = now - timedelta(minutes=5)
        session.add_all([newer, older])
        await session.commit()
        older_id = older.id

    async with session_factory() as session:
        claimed = await FingerprintService(session).claim_next(school_world.roaming_scanner)

    assert claimed.id == older_id


@pytest.mark.asyncio
async def test_reclaim_returns_stale_capture_to_queue(school_world, session_factory):
    """
    Scenario: a scanner claimed a job and went quiet past the timeout.
    Expectation: the job is PENDING again, unbound, and another scanner can claim it.
    """
    async with session_factory() as session:
        session.add(make_enrollment(school_world, school_world.student_a))
        await session.commit()

    async with session_factory() as session:
        claimed = await FingerprintService(session).claim_next(school_world.scanner)

    async with session_factory() as session:
        reclaimed = await FingerprintService(session).reclaim_stale_enrollments(
            timeout_minutes=10, now=utcnow() + timedelta(minutes=11)
        )

    assert reclaimed == [claimed.id]

    async with session_factory() as session:
        stored = await session.get(FingerprintEnrollment, claimed.id)
        assert stored.status == EnrollmentStatus.PENDING
        assert stored.device_id is None
        assert stored.claimed_at is None
        logs = (await session.execute(select(SystemLog))).scalars().all()
        assert [log.action for log in logs] == ["ENROLLMENT_RECLAIMED"]

    async with session_factory() as session:
        again = await FingerprintService(session).claim_next(school_world.roaming_scanner)
    assert again is not None
    assert again.id == claimed.id


@pytest.mark.asyncio
async def test_reclaim_keeps_requested_device_binding(school_world, session_factory):
    async with session_factory() as session:
        session.add(make_enrollment(
            school_world,
            school_world.student_a,
            device_id=school_world.scanner.id,
            requested_device_id=school_world.scanner.id
        ))
        await session.commit()

    async with session_factory() as session:
        claimed = await FingerprintService(session).claim_next(school_world.scanner)
    async with session_factory() as session:
        await FingerprintService(session).reclaim_stale_enrollments(
            timeout_minutes=10, now=utcnow() + timedelta(minutes=30)
        )
    async with session_factory() as session:
        stored = await session.get(FingerprintEnrollment, claimed.id)

    assert stored.status == EnrollmentStatus.PENDING
    assert stored.device_id == school_world.scanner.id


@pytest.mark.asyncio
async def test_reclaim_leaves_fresh_captures_alone(school_world, session_factory):
    async with session_factory() as session:
        session.add(make_enrollment(school_world, school_world.student_a))
        await session.commit()
    async with session_factory() as session:
        claimed = await FingerprintService(session).claim_next(school_world.scanner)

    async with session_factory() as session:
        reclaimed = await FingerprintService(session).reclaim_stale_enrollments(timeout_minutes=10)
    async with session_factory() as session:
        stored = await session.get(FingerprintEnrollment, claimed.id)

    assert reclaimed == []
    assert stored.status == EnrollmentStatus.CAPTURING


@pytest.mark.asyncio
async def test_fail_is_locked_to_claiming_device(school_world, session_factory, db_session):
    other = await create_device(db_session, school_world.school, "FP-A-02", school_world.classroom_a)
    async with session_factory() as session:
        session.add(make_enrollment(school_world, school_world.student_a))
        await session.commit()
    async with session_factory() as session:
        claimed = await FingerprintService(session).claim_next(school_world.scanner)

    async with session_factory() as session:
        with pytest.raises(PermissionDenied):
            await FingerprintService(session).fail_enrollment(other, claimed.id, "moved")


@pytest.mark.asyncio
async def test_unexplained_unique_violation_surfaces_as_database_error(school_world, session_factory, monkeypatch):
    """The insert loses to an active row that the follow-up lookup cannot see"""
    async with session_factory() as session:
        session.add(make_enrollment(school_world, school_world.student_a))
        await session.commit()

    async def never_found(self, student_id):
        return None

    monkeypatch.setattr(FingerprintService, "get_active_enrollment", never_found)

    async with session_factory() as session:
        with pytest.raises(DatabaseError) as exc_info:
            await FingerprintService(session).request_enrollment(
                school_world.admin, EnrollmentCreate(student_id=school_world.student_a.id)
            )

    assert exc_info.value.status_code == 500
    assert exc_info.value.error_code == "DB_ERROR"
    assert isinstance(exc_info.value.__cause__, IntegrityError)
