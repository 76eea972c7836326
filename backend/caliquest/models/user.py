"""
User and profile models for CaliQuest.

``User`` holds the credentials used by the authentication flow. ``Profile``
is the per-player record created by the profile-setup flow; its
``is_admin`` and ``onboarding_completed`` flags gate navigation.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import (
    Boolean, Integer, String, DateTime, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from caliquest.core.database import Base


class User(Base):
    """
    User model for authentication.
    """
    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Authentication fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Password reset tracking
    password_reset_token: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    password_reset_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    profile = relationship(
        "Profile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )
    completions = relationship("CompletionRecord", back_populates="user", cascade="all, delete-orphan")
    admin_logs = relationship("AdminLog", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class Profile(Base):
    """
    Player profile, keyed by the owning user's id.
    """
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )

    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Navigation flags; neither is written by the progression engine
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="profile")

    __table_args__ = (
        CheckConstraint("age IS NULL OR (age > 0 AND age < 150)", name="check_profile_age_range"),
        Index("idx_profile_admin", "is_admin"),
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, username='{self.username}')>"
