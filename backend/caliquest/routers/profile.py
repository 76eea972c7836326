"""
Profile router for CaliQuest.

Profile setup is the onboarding step between registration and play: it
creates the profile row with a unique username and marks onboarding done.
"""

from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from caliquest.core.config import settings
from caliquest.core.database import get_db, translate_db_errors
from caliquest.core.exceptions import ConstraintViolation, NotFound
from caliquest.models.user import Profile
from caliquest.routers.auth import SessionContext, get_session_context, session_response
from caliquest.schemas.auth import SessionResponse
from caliquest.schemas.profile import ProfileResponse, ProfileSetup


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=ProfileResponse)
async def get_my_profile(
    context: SessionContext = Depends(get_session_context)
) -> Profile:
    """
    Get the caller's profile.
    """
    if context.profile is None:
        raise NotFound("Profile not set up yet", error_code="PROFILE_NOT_FOUND")
    return context.profile


@router.post("/setup", response_model=SessionResponse)
async def setup_profile(
    profile_data: ProfileSetup,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Complete onboarding by creating the caller's profile.

    Returns the refreshed session so the client can route straight to the
    game without another round trip.
    """
    if context.onboarding_completed:
        raise ConstraintViolation("Profile already set up", error_code="PROFILE_EXISTS")

    username_taken = db.query(Profile).filter(
        Profile.username == profile_data.username,
        Profile.id != context.user_id
    ).first()
    if username_taken:
        raise ConstraintViolation(
            "Username already taken",
            details={"username": profile_data.username},
            error_code="USERNAME_TAKEN"
        )

    profile = context.profile or Profile(id=context.user_id)
    profile.username = profile_data.username
    profile.age = profile_data.age
    profile.avatar_url = profile_data.avatar_url or settings.avatar_url_for(profile_data.username)
    profile.onboarding_completed = True

    with translate_db_errors(db, "saving profile"):
        db.add(profile)
        db.commit()
    db.refresh(profile)

    logger.info(f"User {context.user_id} completed profile setup as {profile.username}")

    return session_response(
        SessionContext(user_id=context.user_id, email=context.email, profile=profile)
    )
