"""
Security utilities for CaliQuest.

Handles password hashing, JWT token creation/verification, and password
reset tokens for the authentication flow.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        bool: True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The plain text password to hash

    Returns:
        str: The hashed password
    """
    return pwd_context.hash(password)


def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: The subject of the token (the user ID as a string)
        expires_delta: Optional custom expiration time
        additional_claims: Optional additional claims to include in the token

    Returns:
        str: The encoded JWT token
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"exp": expire, "sub": subject, "iat": now}

    # Add additional claims if provided
    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a JWT token.

    Args:
        token: The JWT token to verify

    Returns:
        Optional[Dict[str, Any]]: The decoded token payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def create_password_reset_token(email: str) -> str:
    """
    Create a token for password reset.

    Args:
        email: The email address for password reset

    Returns:
        str: The password reset token
    """
    expires_delta = timedelta(hours=settings.PASSWORD_RESET_EXPIRE_HOURS)
    return create_access_token(
        subject=email,
        expires_delta=expires_delta,
        additional_claims={"type": "password_reset"}
    )


def verify_password_reset_token(token: str) -> Optional[str]:
    """
    Verify a password reset token.

    Args:
        token: The token to verify

    Returns:
        Optional[str]: The email address if valid, None otherwise
    """
    payload = verify_token(token)
    if payload and payload.get("type") == "password_reset":
        return payload.get("sub")
    return None


def check_password_strength(password: str) -> Dict[str, Any]:
    """
    Check a password against the sign-up rules.

    Args:
        password: The password to check

    Returns:
        Dict[str, Any]: Validity flag and the list of failed rules
    """
    issues = []

    if len(password) < settings.PASSWORD_MIN_LENGTH:
        issues.append(
            f"Password should be at least {settings.PASSWORD_MIN_LENGTH} characters long"
        )

    if not any(c.isalpha() for c in password):
        issues.append("Password should contain at least one letter")

    if not any(c.isdigit() for c in password):
        issues.append("Password should contain at least one number")

    return {
        "issues": issues,
        "valid": len(issues) == 0
    }
