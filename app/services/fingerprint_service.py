from datetime import datetime, timedelta
from typing import List, Optional, Tuple, Union

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.core.errors import DatabaseError, NotFoundError, PermissionDenied, ValidationError
from app.core.logging import logger
from app.core.tenant import (
    ensure_classroom_in_school,
    get_effective_school_id,
    get_teacher_classroom_ids,
    is_teacher,
    restrict_to_teacher_classrooms,
)
from app.models.device import Device
from app.models.fingerprint import FingerprintEnrollment
from app.models.student import Student
from app.models.user import User
from app.schemas.enums import EnrollmentStatus
from app.schemas.fingerprint.requests import EnrollmentCreate
from app.services.base_service import BaseService
from app.utils.time import utcnow

DEFAULT_FAILURE_REASON = "Device reported failure"
# Candidates tried per dequeue before giving up on a contended queue
MAX_CLAIM_ATTEMPTS = 5


class FingerprintService(BaseService):
    """Enrollment queue between dashboard users and fingerprint scanners"""

    def _enrollment_query(self):
        return select(FingerprintEnrollment).options(
            selectinload(FingerprintEnrollment.student),
            selectinload(FingerprintEnrollment.classroom),
            selectinload(FingerprintEnrollment.device),
        )

    async def get_enrollment(self, enrollment_id: int) -> Optional[FingerprintEnrollment]:
        result = await self.db.execute(
            self._enrollment_query()
            .where(FingerprintEnrollment.id == enrollment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_active_enrollment(self, student_id: int) -> Optional[FingerprintEnrollment]:
        result = await self.db.execute(
            self._enrollment_query()
            .where(
                and_(
                    FingerprintEnrollment.student_id == student_id,
                    FingerprintEnrollment.status.in_(EnrollmentStatus.active())
                )
            )
            .order_by(FingerprintEnrollment.created_at.desc(), FingerprintEnrollment.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def resolve_device(self, device_ref: Union[int, str], school_id: int) -> Device:
        """Find a device of the school by row id or by hardware id"""
        ref = str(device_ref).strip()

        if ref.isdigit():
            device = await self.db.get(Device, int(ref))
            if device is not None and device.school_id == school_id:
                return device

        result = await self.db.execute(select(Device).where(Device.device_id == ref))
        device = result.scalar_one_or_none()
        if device is None or device.school_id != school_id:
            raise ValidationError("Device not found for this school")
        return device

    async def request_enrollment(
        self,
        user: User,
        data: EnrollmentCreate
    ) -> Tuple[FingerprintEnrollment, bool]:
        """
        Queue a capture for a student.

        Returns the enrollment and whether it was newly created. An already
        active enrollment for the student is returned unchanged.
        """
        student = await self.db.get(Student, data.student_id)
        if student is None:
            raise NotFoundError("Student not found")

        if not user.is_platform_admin:
            school_id = get_effective_school_id(user)
            if student.school_id != school_id:
                raise PermissionDenied("Student belongs to another school")

        classroom_id = data.classroom_id or student.classroom_id
        if classroom_id is None:
            raise ValidationError("Classroom is required for fingerprint enrollment")
        await ensure_classroom_in_school(self.db, classroom_id, student.school_id)

        if is_teacher(user):
            assigned = await get_teacher_classroom_ids(self.db, user.id)
            if classroom_id not in assigned:
                raise PermissionDenied("Teacher is not assigned to this classroom")

        device = None
        if data.device_id is not None and str(data.device_id).strip():
            device = await self.resolve_device(data.device_id, student.school_id)
            if device.classroom_id is not None and device.classroom_id != classroom_id:
                raise ValidationError("Device is mapped to another classroom")

        existing = await self.get_active_enrollment(student.id)
        if existing is not None:
            return existing, False

        enrollment = FingerprintEnrollment(
            school_id=student.school_id,
            student_id=student.id,
            classroom_id=classroom_id,
            device_id=device.id if device else None,
            requested_device_id=device.id if device else None,
            status=EnrollmentStatus.PENDING,
            requested_by=user.id,
            created_at=utcnow(),
        )
        student_pk, school_id = student.id, student.school_id
        self.db.add(enrollment)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # A concurrent request won the partial unique index
            await self.db.rollback()
            existing = await self.get_active_enrollment(student_pk)
            if existing is None:
                logger.error(f"Enrollment insert for student {student_pk} rejected: {exc.orig}")
                raise DatabaseError("Could not queue fingerprint enrollment") from exc
            logger.info(
                f"Concurrent enrollment request for student {student_pk}, "
                f"returning enrollment {existing.id}"
            )
            return existing, False

        logger.info(
            f"Enrollment {enrollment.id} queued for student {student_pk} by user {user.id}",
            extra={"enrollment_id": enrollment.id, "school_id": school_id}
        )
        return await self.get_enrollment(enrollment.id), True

    async def list_enrollments(
        self,
        user: User,
        status: Optional[str] = None,
        classroom_id: Optional[int] = None,
        student_id: Optional[int] = None,
        limit: int = 20,
        school_id: Optional[int] = None
    ) -> List[FingerprintEnrollment]:
        effective_school_id = get_effective_school_id(user, school_id)

        query = self._enrollment_query()
        if effective_school_id is not None:
            query = query.where(FingerprintEnrollment.school_id == effective_school_id)

        if status:
            try:
                query = query.where(FingerprintEnrollment.status == EnrollmentStatus(status.upper()))
            except ValueError:
                logger.debug(f"Ignoring unknown enrollment status filter {status!r}")

        classroom_ids = await restrict_to_teacher_classrooms(self.db, user, classroom_id)
        if classroom_ids is not None:
            if not classroom_ids:
                return []
            query = query.where(FingerprintEnrollment.classroom_id.in_(classroom_ids))

        if student_id is not None:
            query = query.where(FingerprintEnrollment.student_id == student_id)

        result = await self.db.execute(
            query
            .order_by(FingerprintEnrollment.created_at.desc(), FingerprintEnrollment.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_enrollment_for_user(self, user: User, enrollment_id: int) -> FingerprintEnrollment:
        enrollment = await self.get_enrollment(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")

        if not user.is_platform_admin:
            if enrollment.school_id != get_effective_school_id(user):
                raise PermissionDenied("Enrollment belongs to another school")

        if is_teacher(user):
            assigned = await get_teacher_classroom_ids(self.db, user.id)
            if enrollment.classroom_id not in assigned:
                raise PermissionDenied("Teacher is not assigned to this classroom")

        return enrollment

    async def claim_next(self, device: Device) -> Optional[FingerprintEnrollment]:
        """
        Move the oldest PENDING job the device may serve to CAPTURING.

        The status change is a compare-and-set so two scanners polling at once
        never both receive the same job.
        """
        for _ in range(MAX_CLAIM_ATTEMPTS):
            query = (
                select(FingerprintEnrollment.id)
                .where(
                    and_(
                        FingerprintEnrollment.school_id == device.school_id,
                        FingerprintEnrollment.status == EnrollmentStatus.PENDING,
                        or_(
                            FingerprintEnrollment.device_id.is_(None),
                            FingerprintEnrollment.device_id == device.id
                        )
                    )
                )
                .order_by(FingerprintEnrollment.created_at.asc(), FingerprintEnrollment.id.asc())
                .limit(1)
            )
            if device.classroom_id is not None:
                query = query.where(FingerprintEnrollment.classroom_id == device.classroom_id)

            candidate_id = (await self.db.execute(query)).scalar_one_or_none()
            if candidate_id is None:
                return None

            now = utcnow()
            result = await self.db.execute(
                update(FingerprintEnrollment)
                .where(
                    and_(
                        FingerprintEnrollment.id == candidate_id,
                        FingerprintEnrollment.status == EnrollmentStatus.PENDING
                    )
                )
                .values(
                    status=EnrollmentStatus.CAPTURING,
                    device_id=device.id,
                    claimed_at=now,
                    updated_at=now
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()

            if result.rowcount == 1:
                logger.info(
                    f"Device {device.device_id} claimed enrollment {candidate_id}",
                    extra={"device_id": device.device_id, "enrollment_id": candidate_id}
                )
                return await self.get_enrollment(candidate_id)

            logger.info(f"Enrollment {candidate_id} was claimed concurrently, trying next")

        return None

    async def _get_for_device(self, device: Device, enrollment_id: int) -> FingerprintEnrollment:
        enrollment = await self.get_enrollment(enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        if enrollment.school_id != device.school_id:
            raise PermissionDenied("Enrollment belongs to another school")
        if enrollment.device_id is not None and enrollment.device_id != device.id:
            raise PermissionDenied("Enrollment is locked by another device")
        return enrollment

    async def _store_student_template(self, student_id: int, template: str) -> None:
        student = await self.db.get(Student, student_id)
        if student is None:
            raise NotFoundError("Student not found")
        student.fingerprint_data = template
        await self.db.flush()

    async def complete_enrollment(
        self,
        device: Device,
        enrollment_id: int,
        template: str
    ) -> FingerprintEnrollment:
        """Record the template on the enrollment and the student atomically"""
        enrollment = await self._get_for_device(device, enrollment_id)

        async with self.transaction():
            now = utcnow()
            enrollment.status = EnrollmentStatus.COMPLETED
            enrollment.template = template
            enrollment.device_id = device.id
            enrollment.failure_reason = None
            enrollment.completed_at = now
            enrollment.updated_at = now
            await self.db.flush()
            await self._store_student_template(enrollment.student_id, template)

        logger.info(
            f"Enrollment {enrollment_id} completed by device {device.device_id}",
            extra={"device_id": device.device_id, "enrollment_id": enrollment_id}
        )
        return await self.get_enrollment(enrollment_id)

    async def fail_enrollment(
        self,
        device: Device,
        enrollment_id: int,
        reason: Optional[str] = None
    ) -> FingerprintEnrollment:
        enrollment = await self._get_for_device(device, enrollment_id)

        async with self.transaction():
            enrollment.status = EnrollmentStatus.FAILED
            enrollment.template = None
            enrollment.device_id = device.id
            enrollment.failure_reason = (reason or "").strip() or DEFAULT_FAILURE_REASON
            enrollment.updated_at = utcnow()

        logger.warning(
            f"Enrollment {enrollment_id} failed on device {device.device_id}: {enrollment.failure_reason}",
            extra={"device_id": device.device_id, "enrollment_id": enrollment_id}
        )
        return enrollment

    async def reclaim_stale_enrollments(
        self,
        timeout_minutes: int,
        now: Optional[datetime] = None
    ) -> List[int]:
        """
        Return CAPTURING jobs whose device went quiet to the queue.

        A job is stale once it has been CAPTURING for longer than
        timeout_minutes. Each reset is conditional on the row still being in
        the state that was read, so a completion racing the sweep wins.
        """
        cutoff = (now or utcnow()) - timedelta(minutes=timeout_minutes)

        result = await self.db.execute(
            select(FingerprintEnrollment)
            .where(
                and_(
                    FingerprintEnrollment.status == EnrollmentStatus.CAPTURING,
                    or_(
                        FingerprintEnrollment.claimed_at < cutoff,
                        and_(
                            FingerprintEnrollment.claimed_at.is_(None),
                            FingerprintEnrollment.updated_at < cutoff
                        )
                    )
                )
            )
            .order_by(FingerprintEnrollment.id)
        )
        stale = list(result.scalars().all())

        reclaimed: List[int] = []
        for enrollment in stale:
            outcome = await self.db.execute(
                update(FingerprintEnrollment)
                .where(
                    and_(
                        FingerprintEnrollment.id == enrollment.id,
                        FingerprintEnrollment.status == EnrollmentStatus.CAPTURING
                    )
                )
                .values(
                    status=EnrollmentStatus.PENDING,
                    device_id=enrollment.requested_device_id,
                    claimed_at=None,
                    updated_at=utcnow()
                )
                .execution_options(synchronize_session=False)
            )
            if outcome.rowcount == 1:
                reclaimed.append(enrollment.id)
                self.log_action(
                    "ENROLLMENT_RECLAIMED",
                    school_id=enrollment.school_id,
                    details={
                        "enrollment_id": enrollment.id,
                        "student_id": enrollment.student_id,
                        "device_id": enrollment.device_id,
                    }
                )

        await self.db.commit()

        if reclaimed:
            logger.warning(f"Reclaimed {len(reclaimed)} stale enrollment(s): {reclaimed}")
        return reclaimed
