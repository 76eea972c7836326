"""
Core module for the CaliQuest backend.

This module contains core functionality including:
- Configuration management
- Database connections and error translation
- Security utilities (JWT, password hashing)
- Domain exceptions
"""

from .config import settings
from .database import get_db, engine, SessionLocal
from .security import (
    create_access_token,
    verify_password,
    get_password_hash,
    verify_token
)

__all__ = [
    "settings",
    "get_db",
    "engine",
    "SessionLocal",
    "create_access_token",
    "verify_password",
    "get_password_hash",
    "verify_token"
]
