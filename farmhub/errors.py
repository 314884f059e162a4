"""
Domain exceptions for the coordination core.

Each exception carries the HTTP status and error category the API reports
for it. Messages are safe to show to clients; store errors never are.
"""

from typing import Any, Optional


class FarmHubError(Exception):
    """Base exception for booking, maintenance and inventory operations."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(FarmHubError):
    """
    Malformed, missing or past-dated input.

    Causes:
    - Unparseable dates
    - Start date in the past, or end date not after start date
    - Missing required fields
    """

    status_code = 400
    error_type = "validation_error"


class NotFoundError(FarmHubError):
    """Referenced equipment, booking, maintenance window, supply or order is absent."""

    status_code = 404
    error_type = "not_found"


class UnauthorizedError(FarmHubError):
    """No authenticated user id reached the API."""

    status_code = 401
    error_type = "unauthorized"


class ForbiddenError(FarmHubError):
    """Actor is not the owner, requester or supplier required for the action."""

    status_code = 403
    error_type = "forbidden"


class ConflictError(FarmHubError):
    """The requested date range is already taken."""

    status_code = 409
    error_type = "conflict"


class BookingConflictError(ConflictError):
    """An active booking overlaps the requested range."""

    error_type = "booking_conflict"

    def __init__(self, details: Optional[dict[str, Any]] = None):
        super().__init__("Date conflict detected", details)


class MaintenanceConflictError(ConflictError):
    """An active maintenance window falls inside the requested range."""

    error_type = "maintenance_conflict"

    def __init__(self, details: Optional[dict[str, Any]] = None):
        super().__init__("Maintenance conflict detected", details)


class InsufficientStockError(FarmHubError):
    """Requested quantity exceeds what the supply has available."""

    status_code = 400
    error_type = "insufficient_stock"


class InvalidTransition(FarmHubError):
    """
    State-machine violation.

    Raised for transitions out of terminal states and for edges the
    lifecycle does not define.
    """

    status_code = 400
    error_type = "invalid_transition"


class InvalidQuantity(FarmHubError):
    """Quantity change would leave stock negative or below what is reserved."""

    status_code = 400
    error_type = "invalid_quantity"


class InternalError(FarmHubError):
    """Unexpected store failure."""

    status_code = 500
    error_type = "internal_error"
