"""
Database models for CaliQuest.

This module contains all SQLAlchemy models for the application:
- User and profile models for authentication and navigation flags
- World models (maps, levels, exercises) for authored content
- Progress models for completion tracking
- Admin models for the audit trail
"""

from caliquest.core.database import Base

# Import all models to ensure they're registered with SQLAlchemy
from .user import User, Profile
from .world import Map, Level, Exercise, EntityKind
from .progress import CompletionRecord, UnitKind
from .admin import AdminLog, AdminAction

# Export all models
__all__ = [
    "Base",
    "User",
    "Profile",
    "Map",
    "Level",
    "Exercise",
    "EntityKind",
    "CompletionRecord",
    "UnitKind",
    "AdminLog",
    "AdminAction"
]
