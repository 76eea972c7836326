"""
Content models for CaliQuest.

Defines Map, Level and Exercise: the three authored entity kinds. Maps and
levels are the units that take part in progression; exercises are leaves and
are never locked on their own.
"""

from datetime import datetime
from typing import Optional
from enum import Enum
from sqlalchemy import (
    Integer, String, DateTime, Text, ForeignKey, Index
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from caliquest.core.database import Base


class EntityKind(str, Enum):
    """Kinds of authored content."""
    MAP = "map"
    LEVEL = "level"
    EXERCISE = "exercise"


class Map(Base):
    """
    Map model: a top-level themed region containing levels.
    """
    __tablename__ = "maps"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Basic information
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Ordering among maps
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    levels = relationship("Level", back_populates="map", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_map_order", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Map(id={self.id}, name='{self.name}', order_index={self.order_index})>"


class Level(Base):
    """
    Level (stage) model: an ordered unit within a map.
    """
    __tablename__ = "levels"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Map relationship
    map_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("maps.id", ondelete="CASCADE"),
        nullable=False
    )

    # Basic information
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Ordering within the map
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    map = relationship("Map", back_populates="levels")
    exercises = relationship("Exercise", back_populates="level", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_level_map_order", "map_id", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Level(id={self.id}, name='{self.name}', map_id={self.map_id})>"


class Exercise(Base):
    """
    Exercise (drill) model: a video-guided leaf inside a level.
    """
    __tablename__ = "exercises"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Level relationship
    level_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("levels.id", ondelete="CASCADE"),
        nullable=False
    )

    # Content
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    video_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    video_key: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)  # Blob storage key

    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    level = relationship("Level", back_populates="exercises")

    __table_args__ = (
        Index("idx_exercise_level_order", "level_id", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Exercise(id={self.id}, name='{self.name}', level_id={self.level_id})>"
