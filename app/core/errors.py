from typing import Any, Dict, List, Optional, Union

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings


class BaseAPIError(Exception):
    """Base exception class for API errors"""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

class AuthenticationError(BaseAPIError):
    """Base class for authentication-related errors"""
    def __init__(
        self,
        message: str = "Access token required",
        error_code: str = "AUTH_REQUIRED",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            details=details
        )

class InvalidCredentialsException(AuthenticationError):
    """Raised when user credentials are invalid"""
    def __init__(
        self,
        message: str = "Invalid credentials",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="INVALID_CREDENTIALS",
            details=details
        )

class TokenError(BaseAPIError):
    """Raised when a token cannot be decoded, has expired or has the wrong type"""
    def __init__(
        self,
        message: str = "Invalid or expired token",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="TOKEN_ERROR",
            details=details
        )

class PermissionDenied(BaseAPIError):
    """Raised when the caller may not touch the resource"""
    def __init__(
        self,
        message: str = "Insufficient role permissions",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
            details=details
        )

class ValidationError(BaseAPIError):
    """Raised when input validation fails"""
    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            details=details
        )

class TenantContextError(ValidationError):
    """Raised when a non-platform principal has no school"""
    def __init__(
        self,
        message: str = "School context is required for this operation",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, details=details)
        self.error_code = "SCHOOL_CONTEXT_REQUIRED"

class NotFoundError(BaseAPIError):
    """Raised when a requested resource is not found"""
    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details=details
        )

class ConflictError(BaseAPIError):
    """Raised when a unique resource already exists"""
    def __init__(
        self,
        message: str = "Resource already exists",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT",
            details=details
        )

class DatabaseError(BaseAPIError):
    """Raised when there's a database-related error"""
    def __init__(
        self,
        message: str = "Database error occurred",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="DB_ERROR",
            details=details
        )


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into field/message pairs"""
    return [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value")
        }
        for error in errors
    ]


def get_error_message(
    error: Union[Exception, HTTPException, str],
    default_message: str = "An unexpected error occurred",
    include_details: bool = True
) -> Dict[str, Any]:
    """
    Formats an error into the response envelope.

    Args:
        error: The exception that was raised or error message string
        default_message: Fallback message if error type is not recognized
        include_details: Whether to include error details in response

    Returns:
        Dict containing the message, error code, status code and optional details
    """
    error_response = {
        "success": False,
        "error_code": "INTERNAL_ERROR",
        "message": default_message,
        "status_code": 500
    }

    if isinstance(error, str):
        error_response.update({
            "message": error,
            "error_code": "GENERAL_ERROR"
        })
        return error_response

    if isinstance(error, HTTPException):
        error_response.update({
            "error_code": "HTTP_ERROR",
            "message": str(error.detail),
            "status_code": error.status_code
        })

    elif isinstance(error, SQLAlchemyError):
        error_response.update({
            "error_code": "DB_ERROR",
            "message": "Database error occurred",
            "status_code": 500
        })

    elif isinstance(error, BaseAPIError):
        error_response.update({
            "error_code": error.error_code,
            "message": error.message,
            "status_code": error.status_code
        })

        if include_details and error.details:
            error_response["details"] = error.details

    if settings.DEBUG:
        error_response["error_type"] = error.__class__.__name__

    return error_response
