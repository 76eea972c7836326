"""
Progress tracking models for CaliQuest.

A ``CompletionRecord`` is the durable fact that a user finished a map or a
level. There is at most one per (user, unit); rows are never updated.
"""

from datetime import datetime
from typing import Optional
from enum import Enum
from sqlalchemy import (
    Integer, String, DateTime, ForeignKey, UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from caliquest.core.database import Base


class UnitKind(str, Enum):
    """Kinds of unit that take part in progression."""
    MAP = "map"
    LEVEL = "level"


class CompletionRecord(Base):
    """
    Completion of a unit (map or level) by a user.
    """
    __tablename__ = "user_progress"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    # Completed unit; parent_id is the map id for level completions
    unit_kind: Mapped[str] = mapped_column(String(10), nullable=False)
    unit_id: Mapped[int] = mapped_column(Integer, nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="completions")

    # Table constraints
    __table_args__ = (
        UniqueConstraint("user_id", "unit_kind", "unit_id", name="uq_user_progress_unit"),
        CheckConstraint("unit_kind IN ('map', 'level')", name="check_progress_unit_kind"),
        Index("idx_user_progress_parent", "user_id", "unit_kind", "parent_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<CompletionRecord(user_id={self.user_id}, {self.unit_kind}_id={self.unit_id})>"
        )
