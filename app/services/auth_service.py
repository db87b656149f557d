import re
import secrets
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.errors import InvalidCredentialsException, ValidationError
from app.core.logging import logger
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.school import School
from app.models.user import User
from app.schemas.auth.requests import LoginRequest, SignupRequest
from app.schemas.enums import UserRoleEnum
from app.services.base_service import BaseService


def generate_school_code(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")[:24] or "school"
    return f"{slug}-{secrets.token_hex(3)}"


class AuthService(BaseService):

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .options(selectinload(User.school))
            .where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_with_school(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .options(selectinload(User.school))
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def signup(self, data: SignupRequest) -> Tuple[User, str]:
        """Create a school together with its first school admin"""
        if await self.get_user_by_email(data.email) is not None:
            raise ValidationError("Email already registered")

        code = data.school_code.strip() if data.school_code else generate_school_code(data.school_name)
        existing_school = await self.db.execute(select(School).where(School.code == code))
        if existing_school.scalar_one_or_none() is not None:
            raise ValidationError("School code already exists")

        async with self.transaction():
            school = School(name=data.school_name.strip(), code=code, contact_email=data.email.lower())
            self.db.add(school)
            await self.db.flush()

            user = User(
                email=data.email.lower(),
                password_hash=get_password_hash(data.password),
                full_name=data.full_name.strip(),
                role=UserRoleEnum.SCHOOL_ADMIN,
                school_id=school.id,
                is_active=True,
            )
            self.db.add(user)
            await self.db.flush()
            self.log_action("SCHOOL_CREATED", school_id=school.id, actor=user, details={"code": code, "via": "signup"})

        logger.info(f"School {code} created at signup by {user.email}")
        user = await self.get_user_with_school(user.id)
        return user, create_access_token(user)

    async def login(self, data: LoginRequest) -> Tuple[User, str]:
        user = await self.get_user_by_email(data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            logger.warning(f"Failed login attempt for {data.email}")
            raise InvalidCredentialsException()
        if not user.is_active:
            raise InvalidCredentialsException("Account is disabled")

        logger.info(f"User {user.id} logged in")
        return user, create_access_token(user)

    async def ensure_platform_admin(self) -> Optional[User]:
        """Create the configured platform admin on first start"""
        if not settings.PLATFORM_ADMIN_EMAIL or not settings.PLATFORM_ADMIN_PASSWORD:
            return None

        existing = await self.get_user_by_email(str(settings.PLATFORM_ADMIN_EMAIL))
        if existing is not None:
            logger.info("Platform admin already exists")
            return existing

        admin = User(
            email=str(settings.PLATFORM_ADMIN_EMAIL).lower(),
            password_hash=get_password_hash(settings.PLATFORM_ADMIN_PASSWORD),
            full_name="Platform Admin",
            role=UserRoleEnum.PLATFORM_ADMIN,
            school_id=None,
            is_active=True,
        )
        self.db.add(admin)
        await self.db.commit()
        logger.info("Platform admin created successfully")
        return admin
