from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.errors import AuthenticationError
from app.core.logging import logger
from app.core.security import TokenType, verify_token
from app.models.user import User

# Bearer scheme; missing credentials are reported by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Resolve the principal behind a user access token"""
    payload = verify_token(token, TokenType.ACCESS)

    user_id = payload.get("id")
    user = await db.get(User, int(user_id)) if user_id is not None else None
    if user is None:
        logger.warning(f"Token references unknown user {user_id}")
        raise AuthenticationError("User not found", error_code="USER_NOT_FOUND")

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """Verify user is active"""
    if not current_user.is_active:
        raise AuthenticationError("Inactive user", error_code="INACTIVE_USER")
    return current_user
