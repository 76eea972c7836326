"""
Admin-specific models for CaliQuest.

Defines the AdminLog audit trail written by every admin content change.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text, ForeignKey, Index, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from caliquest.core.database import Base


class AdminAction(str, Enum):
    """Types of admin actions to log."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AdminLog(Base):
    """
    Audit log for admin actions.
    """
    __tablename__ = "admin_logs"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # User who performed the action
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    # Action details
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # map, level, exercise
    entity_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Action metadata
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # Supports IPv6
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Results
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="admin_logs")

    # Table constraints
    __table_args__ = (
        Index("idx_admin_log_user_action", "user_id", "action"),
        Index("idx_admin_log_entity", "entity_type", "entity_id"),
        Index("idx_admin_log_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog(id={self.id}, user_id={self.user_id}, action='{self.action}', entity='{self.entity_type}')>"

    @classmethod
    def log_action(
        cls,
        user_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        success: bool = True,
        error_message: Optional[str] = None
    ) -> "AdminLog":
        """Factory method to create admin log entries."""
        return cls(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent,
            success=success,
            error_message=error_message
        )
