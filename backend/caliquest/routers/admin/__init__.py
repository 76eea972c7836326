"""
Admin routers for CaliQuest.

This module contains all admin-specific API endpoints:
- maps: Map management (CRUD)
- levels: Level management within a map
- exercises: Exercise management with video upload
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from caliquest.core.database import DatabaseManager, get_db
from caliquest.models.admin import AdminLog
from caliquest.routers.auth import SessionContext
from caliquest.schemas.admin import AdminLogList

from .dependencies import get_current_admin_user
from .exercises import router as exercises_router
from .levels import router as levels_router
from .maps import router as maps_router


# Create admin router; every route below requires an admin session
admin_router = APIRouter(dependencies=[Depends(get_current_admin_user)])

# Include all admin sub-routers
admin_router.include_router(
    maps_router,
    prefix="/maps",
    tags=["admin-maps"]
)

admin_router.include_router(
    levels_router,
    prefix="/levels",
    tags=["admin-levels"]
)

admin_router.include_router(
    exercises_router,
    prefix="/exercises",
    tags=["admin-exercises"]
)


# Admin dashboard endpoint
@admin_router.get("/dashboard")
async def get_admin_dashboard(
    admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get admin dashboard overview with table counts and recent activity.
    """
    stats = DatabaseManager.get_table_stats(db)

    recent_logs = db.query(AdminLog).order_by(
        AdminLog.created_at.desc(), AdminLog.id.desc()
    ).limit(5).all()

    return {
        "statistics": {
            "users": stats["users"]["count"],
            "profiles": stats["profiles"]["count"],
            "maps": stats["maps"]["count"],
            "levels": stats["levels"]["count"],
            "exercises": stats["exercises"]["count"],
            "completions": stats["user_progress"]["count"]
        },
        "recent_activity": [
            {
                "action": log.action,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "created_at": log.created_at.isoformat()
            }
            for log in recent_logs
        ],
        "admin": {"user_id": admin.user_id, "email": admin.email}
    }


@admin_router.get("/logs", response_model=AdminLogList)
async def get_admin_logs(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Get the admin audit trail, newest first.
    """
    query = db.query(AdminLog)

    if action:
        query = query.filter(AdminLog.action == action)

    if entity_type:
        query = query.filter(AdminLog.entity_type == entity_type)

    total = query.count()

    logs = query.order_by(
        AdminLog.created_at.desc(), AdminLog.id.desc()
    ).offset(skip).limit(limit).all()

    return {
        "total": total,
        "skip": skip,
        "limit": limit,
        "logs": logs
    }


__all__ = ["admin_router", "get_current_admin_user"]
