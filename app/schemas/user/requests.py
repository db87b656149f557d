from typing import Optional

from pydantic import BaseModel

from app.schemas.enums import UserRoleEnum


class UserRoleUpdate(BaseModel):
    role: UserRoleEnum
    school_id: Optional[int] = None
