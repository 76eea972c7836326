"""
Admin schemas for CaliQuest.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class DeletionResponse(BaseModel):
    message: str
    entity_type: str
    entity_id: int
    removed: Dict[str, int] = {}


class AdminLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    details: Dict[str, Any]
    success: bool
    ip_address: Optional[str] = None
    created_at: datetime


class AdminLogList(BaseModel):
    total: int
    skip: int
    limit: int
    logs: List[AdminLogResponse]
