from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error_code: str
    message: str
    status_code: int
    details: Optional[Dict[str, Any]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error_code": "VALIDATION_ERROR",
                "message": "Validation error",
                "status_code": 400,
                "details": {"fields": [{"field": "body.battery", "message": "Input should be less than or equal to 100"}]}
            }
        }


class MessageResponse(BaseModel):
    message: str
