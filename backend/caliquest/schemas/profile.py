"""
Profile schemas for CaliQuest.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProfileSetup(BaseModel):
    """Payload of the profile-setup (onboarding) flow."""
    username: str = Field(..., min_length=3, max_length=50)
    age: int = Field(..., gt=0, lt=150)
    avatar_url: Optional[str] = Field(None, max_length=500)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v

    @field_validator("avatar_url")
    @classmethod
    def blank_avatar_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    age: Optional[int] = None
    avatar_url: Optional[str] = None
    is_admin: bool
    onboarding_completed: bool
