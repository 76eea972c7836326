"""
Map, level and exercise schemas for CaliQuest.

The ``*Create``/``*Update`` models are used by the admin routers; the
``*Progress`` and ``*Detail`` models carry per-user accessibility for the
player routers.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class MapCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    order_index: Optional[int] = Field(None, ge=0)


class MapUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)


class MapResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    order_index: int
    created_at: datetime


class LevelCreate(BaseModel):
    map_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    order_index: Optional[int] = Field(None, ge=0)


class LevelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)


class LevelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    map_id: int
    name: str
    description: str
    order_index: int
    created_at: datetime


class ExerciseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    level_id: int
    name: str
    description: str
    video_url: Optional[str] = None
    order_index: int
    created_at: datetime


class MapProgress(MapResponse):
    """A map as seen by one player."""
    position: int
    unlocked: bool
    completed: bool


class LevelProgress(LevelResponse):
    """A level as seen by one player."""
    position: int
    unlocked: bool
    completed: bool


class MapDetail(BaseModel):
    map: MapProgress
    levels: List[LevelProgress]


class LevelDetail(BaseModel):
    level: LevelProgress
    map: MapResponse
    exercises: List[ExerciseResponse]
