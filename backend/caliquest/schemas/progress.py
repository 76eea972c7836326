"""
Progress schemas for CaliQuest.
"""

from typing import List, Optional
from pydantic import BaseModel


class LevelCompletionResponse(BaseModel):
    status: str  # recorded or already_completed
    level_id: int
    map_id: int
    map_completed: bool
    next_level_id: Optional[int] = None


class ProgressOverview(BaseModel):
    user_id: int
    completed_map_ids: List[int]
    completed_level_ids: List[int]
    total_maps: int
    total_levels: int
