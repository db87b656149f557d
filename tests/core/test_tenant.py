from types import SimpleNamespace

import pytest

from app.core.errors import PermissionDenied, TenantContextError, ValidationError
from app.core.permissions import RoleChecker, require_school_admin
from app.core.tenant import (
    ensure_classroom_in_school,
    get_effective_school_id,
    require_school_id,
    restrict_to_teacher_classrooms,
)
from app.schemas.enums import UserRoleEnum


def principal(role, school_id=1, user_id=1):
    return SimpleNamespace(id=user_id, role=role, school_id=school_id)


def test_school_users_are_pinned_to_their_school():
    admin = principal(UserRoleEnum.SCHOOL_ADMIN, school_id=4)

    assert get_effective_school_id(admin) == 4
    assert get_effective_school_id(admin, requested_school_id=9) == 4


def test_platform_admin_picks_any_school():
    root = principal(UserRoleEnum.PLATFORM_ADMIN, school_id=None)

    assert get_effective_school_id(root) is None
    assert get_effective_school_id(root, 9) == 9
    assert require_school_id(root, 9) == 9
    with pytest.raises(TenantContextError):
        require_school_id(root)


def test_school_user_without_school_is_rejected():
    with pytest.raises(TenantContextError) as exc_info:
        get_effective_school_id(principal(UserRoleEnum.STAFF, school_id=None))
    assert exc_info.value.error_code == "SCHOOL_CONTEXT_REQUIRED"
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_teacher_classroom_restriction(school_world, db_session):
    teacher = school_world.teacher

    assert await restrict_to_teacher_classrooms(db_session, teacher) == [school_world.classroom_a.id]
    assert await restrict_to_teacher_classrooms(db_session, teacher, school_world.classroom_b.id) == []
    assert await restrict_to_teacher_classrooms(db_session, school_world.admin) is None
    assert await restrict_to_teacher_classrooms(
        db_session, school_world.admin, school_world.classroom_b.id
    ) == [school_world.classroom_b.id]


@pytest.mark.asyncio
async def test_ensure_classroom_in_school(school_world, db_session):
    found = await ensure_classroom_in_school(db_session, school_world.classroom_a.id, school_world.school.id)

    assert found.id == school_world.classroom_a.id
    assert await ensure_classroom_in_school(db_session, None, school_world.school.id) is None
    with pytest.raises(ValidationError):
        await ensure_classroom_in_school(db_session, school_world.other_classroom.id, school_world.school.id)
    with pytest.raises(ValidationError):
        await ensure_classroom_in_school(db_session, 9999, school_world.school.id)


@pytest.mark.asyncio
async def test_role_checker():
    checker = require_school_admin()
    admin = principal(UserRoleEnum.SCHOOL_ADMIN)

    assert await checker(current_user=admin) is admin
    with pytest.raises(PermissionDenied):
        await checker(current_user=principal(UserRoleEnum.TEACHER))
    with pytest.raises(PermissionDenied):
        await RoleChecker([])(current_user=principal(UserRoleEnum.PLATFORM_ADMIN))
