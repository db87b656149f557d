from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class SystemLogResponse(BaseModel):
    id: int
    school_id: Optional[int] = None
    action: str
    actor_id: Optional[int] = None
    actor_role: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlatformOverview(BaseModel):
    schools: int
    users: int
    devices: int
    online_devices: int
    students: int
    recent_logs: List[SystemLogResponse] = []
