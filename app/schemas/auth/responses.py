from pydantic import BaseModel

from app.schemas.user.responses import UserWithSchoolResponse


class AuthResponse(BaseModel):
    user: UserWithSchoolResponse
    token: str
    token_type: str = "bearer"

    class Config:
        from_attributes = True
