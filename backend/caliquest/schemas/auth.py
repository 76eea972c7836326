"""
Authentication schemas for CaliQuest.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .profile import ProfileResponse


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    is_active: bool
    created_at: datetime


class SessionResponse(BaseModel):
    """Explicit session context returned to the client."""
    user_id: int
    email: EmailStr
    profile: Optional[ProfileResponse] = None
    is_admin: bool = False
    onboarding_completed: bool = False


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session: SessionResponse


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    token: str
    new_password: str = Field(..., min_length=1, max_length=128)
