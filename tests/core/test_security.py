from datetime import timedelta
from types import SimpleNamespace

import pytest

from app.core.errors import TokenError
from app.core.security import (
    TokenType,
    create_access_token,
    create_device_token,
    create_token,
    get_password_hash,
    hash_device_secret,
    verify_device_secret,
    verify_password,
    verify_token,
)
from app.schemas.enums import UserRoleEnum


def make_user(**overrides):
    values = {"id": 7, "email": "teacher@greenfield.test", "role": UserRoleEnum.TEACHER, "school_id": 3}
    values.update(overrides)
    return SimpleNamespace(**values)


def test_access_token_claims():
    claims = verify_token(create_access_token(make_user()), TokenType.ACCESS)

    assert claims["sub"] == "7"
    assert claims["id"] == 7
    assert claims["role"] == "TEACHER"
    assert claims["school_id"] == 3
    assert claims["type"] == "access"
    assert claims["jti"]


def test_platform_admin_token_has_no_school():
    claims = verify_token(create_access_token(make_user(role=UserRoleEnum.PLATFORM_ADMIN, school_id=None)))

    assert claims["school_id"] is None


def test_token_type_is_enforced():
    device_token = create_device_token("FP-A-01", 3)

    assert verify_token(device_token, TokenType.DEVICE)["device_id"] == "FP-A-01"
    with pytest.raises(TokenError):
        verify_token(device_token, TokenType.ACCESS)


def test_expired_token_is_rejected():
    token = create_token({"id": 1}, TokenType.ACCESS, expires_delta=timedelta(seconds=-5))

    with pytest.raises(TokenError) as exc_info:
        verify_token(token)
    assert exc_info.value.status_code == 403


def test_tampered_token_is_rejected():
    token = create_access_token(make_user())

    with pytest.raises(TokenError):
        verify_token(token[:-4] + "abcd")


def test_password_hashing():
    hashed = get_password_hash("correct horse")

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_device_secret_verification():
    stored = hash_device_secret("s3cret")

    assert verify_device_secret("s3cret", stored)
    assert not verify_device_secret("other", stored)
    assert not verify_device_secret(None, stored)
    assert not verify_device_secret("s3cret", None)
