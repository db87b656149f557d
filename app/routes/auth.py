from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_user
from app.core.errors import BaseAPIError, NotFoundError
from app.core.logging import logger
from app.models.user import User
from app.schemas.auth import AuthResponse, LoginRequest, SignupRequest
from app.schemas.user.responses import UserWithSchoolResponse
from app.services.auth_service import AuthService

router = APIRouter()


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    data: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Create a school and its first school admin, then sign them in"""
    try:
        user, token = await auth_service.signup(data)
        return {"user": user, "token": token}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception("Unexpected error during signup")
        raise BaseAPIError("Failed to create account")


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    try:
        user, token = await auth_service.login(data)
        return {"user": user, "token": token}
    except BaseAPIError:
        raise
    except Exception:
        logger.exception(f"Unexpected error during login for {data.email}")
        raise BaseAPIError("Login failed")


@router.get("/me", response_model=UserWithSchoolResponse)
async def get_me(
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    user = await auth_service.get_user_with_school(current_user.id)
    if user is None:
        raise NotFoundError("User not found")
    return user
