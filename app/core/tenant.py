"""
Tenant resolution helpers.

Every tenant-scoped query starts from ``get_effective_school_id``: platform
admins may act on any school (or on none, meaning "all schools"), every other
principal is pinned to their own school.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import TenantContextError, ValidationError
from app.models.classroom import Classroom, TeacherClassAssignment
from app.schemas.enums import UserRoleEnum


def get_effective_school_id(principal, requested_school_id: Optional[int] = None) -> Optional[int]:
    """
    Resolve the school a request operates on.

    Returns None only for a platform admin who did not ask for a school,
    which callers treat as "no tenant filter".
    """
    if principal.role == UserRoleEnum.PLATFORM_ADMIN:
        return requested_school_id

    if principal.school_id is None:
        raise TenantContextError()

    return principal.school_id


def require_school_id(principal, requested_school_id: Optional[int] = None) -> int:
    """Like get_effective_school_id, but writes always need a concrete school"""
    school_id = get_effective_school_id(principal, requested_school_id)
    if school_id is None:
        raise TenantContextError()
    return school_id


def is_teacher(principal) -> bool:
    return principal.role == UserRoleEnum.TEACHER


async def get_teacher_classroom_ids(db: AsyncSession, teacher_id: int) -> List[int]:
    result = await db.execute(
        select(TeacherClassAssignment.classroom_id)
        .where(TeacherClassAssignment.teacher_id == teacher_id)
    )
    return list(result.scalars().all())


async def ensure_classroom_in_school(
    db: AsyncSession,
    classroom_id: Optional[int],
    school_id: Optional[int]
) -> Optional[Classroom]:
    if classroom_id is None:
        return None

    classroom = await db.get(Classroom, classroom_id)
    if classroom is None or (school_id is not None and classroom.school_id != school_id):
        raise ValidationError("Classroom does not belong to the selected school")
    return classroom


async def restrict_to_teacher_classrooms(
    db: AsyncSession,
    principal,
    requested_classroom_id: Optional[int] = None
) -> Optional[List[int]]:
    """
    Classroom filter for a teacher principal.

    None means "no restriction" (non-teachers). An empty list means the
    teacher may see nothing for this request.
    """
    if not is_teacher(principal):
        return [requested_classroom_id] if requested_classroom_id is not None else None

    assigned = await get_teacher_classroom_ids(db, principal.id)
    if requested_classroom_id is not None:
        return [requested_classroom_id] if requested_classroom_id in assigned else []
    return assigned
