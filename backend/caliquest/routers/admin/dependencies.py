"""
Shared dependencies and helpers for the admin routers.
"""

from typing import Any, Dict, List, Optional
import logging

from fastapi import Depends, Request

from caliquest.core.exceptions import Forbidden
from caliquest.core.storage import LocalBlobStorage
from caliquest.models.admin import AdminLog
from caliquest.routers.auth import SessionContext, get_session_context


logger = logging.getLogger(__name__)


def get_current_admin_user(
    context: SessionContext = Depends(get_session_context)
) -> SessionContext:
    """
    Verify that the current user has admin privileges.

    The flag is read from the profile fetched for this request, never from
    anything the client sends.
    """
    if not context.is_admin:
        raise Forbidden("Admin access required", error_code="ADMIN_REQUIRED")
    return context


def admin_log(
    admin: SessionContext,
    request: Request,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None
) -> AdminLog:
    """Build an audit entry for an admin action made through ``request``."""
    return AdminLog.log_action(
        user_id=admin.user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )


def remove_blobs(storage: LocalBlobStorage, keys: List[str]) -> None:
    """Delete orphaned blobs after the database change has committed."""
    for key in keys:
        try:
            storage.delete(key)
        except OSError as exc:
            logger.warning(f"Could not delete blob {key}: {exc}")
