"""
Centralized error taxonomy for the portal.
Domain errors carry their HTTP status so routes stay thin; the app-level
exception handler turns them into JSON responses.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500
STATUS_SERVICE_UNAVAILABLE = 503

MSG_UNAUTHORIZED = "Unauthorized"
MSG_NO_EMAIL = "No email found for this user."
MSG_BULLETIN_NOT_FOUND = "Bulletin table not found"
MSG_AGENCY_NOT_FOUND = "Agency not found for user"
MSG_CONFIGURATION = "The portal is not configured correctly. Please contact support."


class PortalError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = STATUS_INTERNAL_ERROR
    error: str = "portal_error"

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class UnauthorizedError(PortalError):
    """No identity, or an identity without an email address. Never retried."""

    status_code = STATUS_UNAUTHORIZED
    error = "unauthorized"

    def __init__(self, message: str = MSG_UNAUTHORIZED, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ConfigurationError(PortalError):
    """Record store or identity provider missing credentials / misconfigured."""

    status_code = STATUS_INTERNAL_ERROR
    error = "configuration_error"


class BulletinTableNotFoundError(PortalError):
    status_code = STATUS_SERVICE_UNAVAILABLE
    error = "bulletin_table_not_found"

    def __init__(self, message: str = MSG_BULLETIN_NOT_FOUND, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ProductsUnavailableError(PortalError):
    status_code = STATUS_SERVICE_UNAVAILABLE
    error = "products_unavailable"


class AgencyNotFoundError(PortalError):
    status_code = STATUS_NOT_FOUND
    error = "agency_not_found"

    def __init__(self, message: str = MSG_AGENCY_NOT_FOUND, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ProductNotFoundError(PortalError):
    status_code = STATUS_NOT_FOUND
    error = "product_not_found"


class ReservationNotAllowedError(PortalError):
    status_code = STATUS_FORBIDDEN
    error = "reservation_not_allowed"
