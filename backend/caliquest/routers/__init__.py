"""
API routers for CaliQuest.

This module contains all API endpoint routers:
- auth: Authentication endpoints and the per-request session context
- profile: Profile setup (onboarding) and the caller's profile
- maps / levels: Player-facing world with per-user accessibility
- progress: Completed units and level completion
- admin: Administrative endpoints for content management
"""

from fastapi import APIRouter

# Import individual routers
from .auth import router as auth_router
from .profile import router as profile_router
from .maps import maps_router, levels_router
from .progress import router as progress_router

# Import admin sub-routers
from .admin import admin_router

# Create main API router
api_router = APIRouter()

# Include all routers with their prefixes
api_router.include_router(
    auth_router,
    prefix="/auth",
    tags=["authentication"]
)

api_router.include_router(
    profile_router,
    prefix="/profile",
    tags=["profile"]
)

api_router.include_router(
    maps_router,
    prefix="/maps",
    tags=["maps"]
)

api_router.include_router(
    levels_router,
    prefix="/levels",
    tags=["levels"]
)

api_router.include_router(
    progress_router,
    prefix="/progress",
    tags=["progress"]
)

api_router.include_router(
    admin_router,
    prefix="/admin",
    tags=["admin"]
)

# Export all routers
__all__ = [
    "api_router",
    "auth_router",
    "profile_router",
    "maps_router",
    "levels_router",
    "progress_router",
    "admin_router"
]
