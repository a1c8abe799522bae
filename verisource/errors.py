"""
Custom exceptions for the VeriSource backend.

Every failure a caller can see is one of these kinds. Each carries the HTTP
status it maps to and renders itself into the stable JSON error shape
returned by the API:

    {"error": "...", "details": "...", "timestamp": "..."}

QuotaExceeded is the one exception to that shape; it reports the caller's
current usage and limit so the client can render an upgrade prompt.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp used in error bodies."""
    return datetime.now(timezone.utc).isoformat()


class VerisourceError(Exception):
    """Base exception class for VeriSource."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_response(self, expose_details: bool = True) -> Dict[str, Any]:
        """Render the error body returned to API callers."""
        return {
            "error": self.error,
            "details": self.message if expose_details else self.error,
            "timestamp": utc_timestamp(),
        }


class ValidationError(VerisourceError):
    """Malformed or incomplete input. User-correctable."""

    status_code = 400
    error = "Invalid request"

    def to_response(self, expose_details: bool = True) -> Dict[str, Any]:
        # Validation messages describe the caller's own input, so always shown
        return super().to_response(expose_details=True)


class PayloadTooLarge(ValidationError):
    """Uploaded payload exceeds the plan's maximum file size."""

    status_code = 413
    error = "Payload too large"

    def __init__(self, size_bytes: int, max_bytes: int):
        super().__init__(
            f"Payload of {size_bytes} bytes exceeds the plan limit of {max_bytes} bytes",
            details={"size_bytes": size_bytes, "max_bytes": max_bytes},
        )
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


class QuotaExceeded(VerisourceError):
    """Daily analysis limit reached for the caller's plan."""

    status_code = 429
    error = "Daily analysis limit exceeded"

    def __init__(self, current_usage: int, limit: int):
        super().__init__(
            f"Daily analysis limit exceeded ({current_usage}/{limit})",
            details={"current_usage": current_usage, "limit": limit},
        )
        self.current_usage = current_usage
        self.limit = limit

    def to_response(self, expose_details: bool = True) -> Dict[str, Any]:
        return {
            "error": self.error,
            "current_usage": self.current_usage,
            "limit": self.limit,
        }


class AuthDegraded(VerisourceError):
    """
    A supplied credential could not be verified.

    Never returned to the caller: the request continues as anonymous and
    this is only logged.
    """

    status_code = 200
    error = "Authentication degraded"


class AccountSuspended(VerisourceError):
    """Authenticated profile has been suspended by an administrator."""

    status_code = 403
    error = "Account suspended"


class EngineFailure(VerisourceError):
    """The external detection engine errored, timed out or returned garbage."""

    status_code = 500
    error = "Analysis failed"


class PersistenceFailure(VerisourceError):
    """Best-effort write failed. Logged; the request still succeeds."""

    status_code = 500
    error = "Persistence failed"


class AuditWriteFailure(VerisourceError):
    """An audit record could not be written. Fatal to the audit endpoint."""

    status_code = 500
    error = "Failed to log action"


class ServiceUnavailable(VerisourceError):
    """Analysis is disabled while the service is in maintenance mode."""

    status_code = 503
    error = "Service unavailable"
