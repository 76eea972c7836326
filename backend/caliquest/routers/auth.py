"""
Authentication router for CaliQuest.

Handles registration, login, password reset, and the explicit session
context that every protected endpoint depends on.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from caliquest.core.config import settings
from caliquest.core.database import get_db, translate_db_errors
from caliquest.core.exceptions import Forbidden, Unauthenticated
from caliquest.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    verify_token,
    create_password_reset_token,
    verify_password_reset_token,
    check_password_strength
)
from caliquest.models.user import User, Profile
from caliquest.schemas.auth import (
    UserRegister,
    UserResponse,
    SessionResponse,
    Token,
    PasswordReset,
    PasswordResetRequest
)


logger = logging.getLogger(__name__)

router = APIRouter()

# OAuth2 scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False
)


@dataclass(frozen=True)
class SessionContext:
    """
    Per-request view of who is calling.

    Built fresh for every request from the bearer token and the stored
    profile; nothing about the session is cached between requests.
    """
    user_id: int
    email: str
    profile: Optional[Profile]

    @property
    def is_admin(self) -> bool:
        return bool(self.profile and self.profile.is_admin)

    @property
    def onboarding_completed(self) -> bool:
        return bool(self.profile and self.profile.onboarding_completed)


# Dependencies
def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from JWT token.
    """
    if not token:
        raise Unauthenticated("Not authenticated")

    payload = verify_token(token)
    if payload is None or payload.get("type") is not None:
        raise Unauthenticated("Could not validate credentials")

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise Unauthenticated("Could not validate credentials")

    with translate_db_errors(db, "loading user"):
        user = db.query(User).filter(User.id == int(subject)).first()
    if user is None:
        raise Unauthenticated("Could not validate credentials")

    if not user.is_active:
        raise Forbidden("Inactive user", error_code="INACTIVE_USER")

    return user


def get_session_context(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SessionContext:
    """
    Re-fetch the caller's profile and build the session context.
    """
    with translate_db_errors(db, "loading profile"):
        profile = db.query(Profile).filter(Profile.id == current_user.id).first()
    return SessionContext(user_id=current_user.id, email=current_user.email, profile=profile)


def require_onboarded_context(
    context: SessionContext = Depends(get_session_context)
) -> SessionContext:
    """
    Session context of a user who has finished profile setup.
    """
    if not context.onboarding_completed:
        raise Forbidden(
            "Complete your profile setup to continue",
            error_code="ONBOARDING_REQUIRED"
        )
    return context


def session_response(context: SessionContext) -> Dict[str, Any]:
    return {
        "user_id": context.user_id,
        "email": context.email,
        "profile": context.profile,
        "is_admin": context.is_admin,
        "onboarding_completed": context.onboarding_completed
    }


def _reject_weak_password(password: str) -> None:
    password_check = check_password_strength(password)
    if not password_check["valid"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Password does not meet requirements",
                "issues": password_check["issues"]
            }
        )


# Endpoints
@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db)
) -> User:
    """
    Register a new user. The profile is created later by profile setup.
    """
    email = user_data.email.lower()

    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    _reject_weak_password(user_data.password)

    new_user = User(
        email=email,
        hashed_password=get_password_hash(user_data.password),
        is_active=True
    )

    with translate_db_errors(db, "registering user"):
        db.add(new_user)
        db.commit()
    db.refresh(new_user)

    logger.info(f"Registered user {new_user.id}")
    return new_user


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    OAuth2 compatible login endpoint. ``username`` carries the email.
    """
    user = db.query(User).filter(User.email == form_data.username.lower()).first()

    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.info("Failed login attempt")
        raise Unauthenticated("Incorrect email or password")

    # Check if user is active
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )

    access_token = create_access_token(
        subject=str(user.id),
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    # Update last login
    user.last_login_at = datetime.now(timezone.utc)
    with translate_db_errors(db, "updating last login"):
        db.commit()

    profile = db.query(Profile).filter(Profile.id == user.id).first()
    context = SessionContext(user_id=user.id, email=user.email, profile=profile)

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "session": session_response(context)
    }


@router.get("/session", response_model=SessionResponse)
async def get_session(
    context: SessionContext = Depends(get_session_context)
) -> Dict[str, Any]:
    """
    Return the caller's current session context.
    """
    return session_response(context)


@router.post("/request-password-reset")
async def request_password_reset(
    request_data: PasswordResetRequest,
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    """
    Request password reset token.
    """
    user = db.query(User).filter(User.email == request_data.email.lower()).first()

    # Always return success to prevent email enumeration
    message = "If the email exists, a password reset link has been sent"

    if user and user.is_active:
        reset_token = create_password_reset_token(user.email)

        user.password_reset_token = reset_token
        user.password_reset_at = datetime.now(timezone.utc)
        with translate_db_errors(db, "storing reset token"):
            db.commit()

        # TODO: hand the token to a mail sender once one is configured
        logger.info(f"Password reset requested for user {user.id}")

    return {"message": message}


@router.post("/reset-password")
async def reset_password(
    reset_data: PasswordReset,
    db: Session = Depends(get_db)
) -> Dict[str, str]:
    """
    Reset password using reset token.
    """
    email = verify_password_reset_token(reset_data.token)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )

    user = db.query(User).filter(User.email == email).first()
    if not user or user.password_reset_token != reset_data.token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid reset token"
        )

    _reject_weak_password(reset_data.new_password)

    user.hashed_password = get_password_hash(reset_data.new_password)
    user.password_reset_token = None
    user.password_reset_at = None
    with translate_db_errors(db, "resetting password"):
        db.commit()

    logger.info(f"Password reset for user {user.id}")
    return {"message": "Password reset successfully"}
