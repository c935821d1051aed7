"""
Base exception classes for application-wide error handling.

Every domain error raised by a service derives from BaseApplicationError so
views can render one consistent JSON body and pick an HTTP status without
knowing the concrete exception type.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - User-correctable input problems (400)
    ├── NotFoundError - Unknown vendor, payout request, etc. (404)
    ├── PermissionDeniedError - Authorization failures (403)
    ├── ConflictError - State conflicts and duplicates (409)
    └── ExternalServiceError - Payment processor and other third parties (502)

Usage:
    from core.exceptions import ValidationError, ConflictError

    raise ValidationError("Payout destination is missing", error_code="invalid_destination")

    raise ConflictError(
        "A payout request is already pending",
        error_code="duplicate_request",
        details={"payoutId": str(existing.id), "amount": "120.00"},
    )

    # In a view
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (conflicting ids, shortfall, etc.)
        http_status: Status code a view should answer with
    """

    default_error_code: str = "application_error"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "success": False,
                "error": "Available balance is below the payout minimum",
                "error_code": "below_minimum",
                "details": {"shortfall": "5.00"}
            }
        """
        result: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input or business-rule validation fails.

    Use for:
    - Missing or malformed payout destination
    - Balance below the redemption minimum
    - Bad request payloads that passed serializer validation

    Note:
        For DRF serializer validation, use DRF's built-in validation.
        Use this for service-layer validation logic.
    """

    default_error_code: str = "validation_error"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        raise NotFoundError(
            f"Payout request {payout_id} not found",
            details={"payoutId": str(payout_id)},
        )
    """

    default_error_code: str = "not_found"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """Raised when the caller lacks permission for an operation."""

    default_error_code: str = "permission_denied"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - A second pending payout request for the same vendor
    - Invalid state transitions (approving a rejected request)
    - Lock contention and optimistic locking failures

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "conflict"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Payment processor failures (network, rejection, timeout)
    - Unexpected processor responses

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
    """

    default_error_code: str = "external_service_error"
    http_status: int = 502
