# tests/conftest.py
import os

# Settings are read at import time, so the environment must be in place first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["ENROLLMENT_SWEEP_ENABLED"] = "false"
os.environ["DEVICE_AUTO_REGISTRATION"] = "false"

# email-validator rejects the reserved ".test" domain used by the fixtures
# unless its documented test-environment switch is on
import email_validator

email_validator.TEST_ENVIRONMENT = True

from types import SimpleNamespace
from typing import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app import create_app
from app.core.database import get_db
from app.models import Base
from app.schemas.enums import UserRoleEnum
from tests import factories


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker]:
    """A fresh SQLite file per test; every session gets its own connection"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def api_app(session_factory):
    application = create_app()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(api_app) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=api_app), base_url="http://test") as http_client:
        yield http_client


@pytest_asyncio.fixture
async def school_world(db_session) -> SimpleNamespace:
    """
    One school with an admin, a teacher assigned to classroom A only,
    a second classroom B, a student in each classroom and a scanner in A.
    A second school with its own admin and student is included for
    cross-tenant checks.
    """
    school = await factories.create_school(db_session)
    other_school = await factories.create_school(db_session, code="riverside", name="Riverside Academy")

    classroom_a = await factories.create_classroom(db_session, school, name="Grade 4A")
    classroom_b = await factories.create_classroom(db_session, school, name="Grade 4B")
    other_classroom = await factories.create_classroom(db_session, other_school, name="Year 1")

    admin = await factories.create_user(db_session, "admin@greenfield.test", UserRoleEnum.SCHOOL_ADMIN, school)
    teacher = await factories.create_user(db_session, "teacher@greenfield.test", UserRoleEnum.TEACHER, school)
    staff = await factories.create_user(db_session, "staff@greenfield.test", UserRoleEnum.STAFF, school)
    other_admin = await factories.create_user(
        db_session, "admin@riverside.test", UserRoleEnum.SCHOOL_ADMIN, other_school
    )
    platform_admin = await factories.create_user(db_session, "root@platform.test", UserRoleEnum.PLATFORM_ADMIN)
    await factories.assign_teacher(db_session, teacher, classroom_a)

    student_a = await factories.create_student(db_session, school, "STU-001", "Amina Yusuf", classroom_a)
    student_b = await factories.create_student(db_session, school, "STU-002", "Brian Otieno", classroom_b)
    other_student = await factories.create_student(
        db_session, other_school, "RIV-001", "Chen Wei", other_classroom
    )

    scanner = await factories.create_device(db_session, school, "FP-A-01", classroom_a)
    roaming_scanner = await factories.create_device(db_session, school, "FP-ROAM-01")
    other_scanner = await factories.create_device(db_session, other_school, "FP-RIV-01", other_classroom)

    return SimpleNamespace(
        school=school,
        other_school=other_school,
        classroom_a=classroom_a,
        classroom_b=classroom_b,
        other_classroom=other_classroom,
        admin=admin,
        teacher=teacher,
        staff=staff,
        other_admin=other_admin,
        platform_admin=platform_admin,
        student_a=student_a,
        student_b=student_b,
        other_student=other_student,
        scanner=scanner,
        roaming_scanner=roaming_scanner,
        other_scanner=other_scanner,
    )
