# app/core/security.py

from datetime import datetime, timedelta, timezone
import hashlib
import secrets
from typing import Dict, Optional, Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings, get_token_expires_delta, get_device_token_expires_delta
from app.core.errors import TokenError
from app.core.logging import logger


class TokenType:
    ACCESS = "access"
    DEVICE = "device"


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def create_token(
    data: Dict[str, Any],
    token_type: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT token with specified type and expiration"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or get_token_expires_delta())

    to_encode.update({
        "exp": expire,
        "type": token_type,
        "iss": settings.TOKEN_ISSUER,
        "jti": secrets.token_urlsafe(32)
    })

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, token_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Decode a JWT and optionally check its type.

    Raises:
        TokenError: the token is malformed, expired, signed with another key
            or carries a different type
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            issuer=settings.TOKEN_ISSUER
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise TokenError()
    except JWTError as e:
        logger.warning(f"Token verification failed: {str(e)}")
        raise TokenError()

    if token_type and payload.get("type") != token_type:
        logger.warning(f"Token type mismatch: expected {token_type}, got {payload.get('type')}")
        raise TokenError()

    return payload


def create_access_token(user) -> str:
    """Create a user token carrying id, email, role and school"""
    data = {
        "sub": str(user.id),
        "id": user.id,
        "email": user.email,
        "role": user.role.value if hasattr(user.role, "value") else user.role,
        "school_id": user.school_id
    }
    return create_token(data, TokenType.ACCESS)


def create_device_token(device_id: str, school_id: int) -> str:
    """Create a long-lived device token carrying the hardware id and school"""
    data = {
        "sub": device_id,
        "device_id": device_id,
        "school_id": school_id
    }
    return create_token(data, TokenType.DEVICE, get_device_token_expires_delta())


def get_password_hash(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def generate_device_secret(length: int = 32) -> str:
    """Generate a secret handed to a device once at provisioning"""
    return secrets.token_urlsafe(length)


def hash_device_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()


def verify_device_secret(secret: Optional[str], secret_hash: Optional[str]) -> bool:
    """Timing-safe comparison of a presented secret against the stored hash"""
    if not secret or not secret_hash:
        return False
    return secrets.compare_digest(hash_device_secret(secret), secret_hash)
