"""
Domain exceptions for the CaliQuest backend.

Services raise these for business rule violations and persistence failures.
The application registers a single handler that turns every ``CaliquestError``
into a JSON response using the class ``status_code``.

Request-shape problems (bad form fields, weak passwords) are still reported
with FastAPI's ``HTTPException`` directly from the routers.
"""

from typing import Any, Dict, Optional

from fastapi import status


class CaliquestError(Exception):
    """
    Base exception for all CaliQuest domain errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        error_code: Stable identifier for programmatic handling
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_error_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.default_error_code or self.__class__.__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the JSON body returned to clients."""
        return {
            "detail": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class NotFound(CaliquestError):
    """Referenced map, level, exercise or profile does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_error_code = "NOT_FOUND"


class UnitLocked(CaliquestError):
    """The predecessor of the requested unit has not been completed."""

    status_code = status.HTTP_403_FORBIDDEN
    default_error_code = "UNIT_LOCKED"


class Forbidden(CaliquestError):
    """Authenticated, but the session lacks the required flag."""

    status_code = status.HTTP_403_FORBIDDEN
    default_error_code = "FORBIDDEN"


class Unauthenticated(CaliquestError):
    """No active session; the client must go through sign-in."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_error_code = "UNAUTHENTICATED"


class ConstraintViolation(CaliquestError):
    """A unique constraint rejected the write."""

    status_code = status.HTTP_409_CONFLICT
    default_error_code = "CONFLICT"


class UploadRejected(CaliquestError):
    """Uploaded file has a disallowed extension or exceeds the size limit."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_error_code = "UPLOAD_REJECTED"


class PersistenceError(CaliquestError):
    """
    Connectivity or schema failure in the database.

    ``schema_missing`` is set when the failure says a relation does not exist,
    which means the schema has not been provisioned yet.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_error_code = "PERSISTENCE_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        schema_missing: bool = False,
    ) -> None:
        self.schema_missing = schema_missing
        super().__init__(
            message,
            details=details,
            error_code="DATABASE_NOT_INITIALIZED" if schema_missing else None,
        )

    @classmethod
    def from_exception(cls, exc: Exception, operation: str) -> "PersistenceError":
        """Build a PersistenceError from a driver/SQLAlchemy exception."""
        text = str(getattr(exc, "orig", None) or exc)
        schema_missing = "no such table" in text or "does not exist" in text
        return cls(
            f"Database failure during {operation}",
            details={"operation": operation, "reason": text.splitlines()[0] if text else ""},
            schema_missing=schema_missing,
        )
