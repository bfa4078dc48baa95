from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class RepairResponse(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    stage: str
    payload: Dict[str, Any]
    error: Optional[str] = None
    status: str
    attempts: int
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
