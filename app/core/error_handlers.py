from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import BaseAPIError, format_validation_errors, get_error_message
from app.core.logging import logger


async def api_error_handler(request: Request, exc: BaseAPIError):
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message} - Path: {request.url.path}")
    else:
        logger.info(f"{exc.error_code}: {exc.message} - Path: {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=get_error_message(exc))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = format_validation_errors(exc.errors())
    logger.info(f"Request validation failed - Path: {request.url.path} - {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error_code": "VALIDATION_ERROR",
            "message": "Validation error",
            "status_code": status.HTTP_400_BAD_REQUEST,
            "details": {"fields": fields},
        }
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    payload = get_error_message(exc)
    payload.update({"error_code": "HTTP_ERROR", "message": str(exc.detail), "status_code": exc.status_code})
    return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error - Path: {request.url.path}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=get_error_message(exc))


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error - Path: {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=get_error_message(exc, include_details=False)
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAPIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
