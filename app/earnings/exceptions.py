"""
Earnings-specific exceptions for redemption, settlement and scheduling.

Exception Hierarchy:
    ValidationError (core)
    ├── PayoutDestinationError - Missing or malformed payout destination
    └── BelowMinimumError - Available balance below the redemption minimum

    NotFoundError (core)
    ├── VendorNotFoundError - No vendor profile for the caller / identifier
    └── PayoutRequestNotFoundError - Unknown payout request id

    ConflictError (core)
    ├── DuplicatePayoutRequestError - A requested payout already exists
    ├── InvalidStateTransitionError - Action not allowed from current status
    ├── LockAcquisitionError - Distributed lock is held elsewhere
    └── StaleRecordError - Optimistic locking conflict

    ExternalServiceError (core)
    └── ProcessorError - Payment processor call failed
        ├── ProcessorRejectedError - Processor refused the payout (permanent)
        ├── ProcessorTimeoutError - No answer within the timeout
        └── ProcessorUnavailableError - Network/5xx failure

    PersistenceError - Bookkeeping write failed after a committed change

Usage:
    from earnings.exceptions import BelowMinimumError

    raise BelowMinimumError(available_cents=4500, minimum_cents=5000)
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


def _usd(cents: int) -> str:
    return f"{Decimal(cents) / 100:.2f}"


# =============================================================================
# Validation Errors (400)
# =============================================================================


class PayoutDestinationError(ValidationError):
    """
    Raised when the vendor's payout destination is missing or malformed.

    Checked when a redemption is requested and again when an operator
    approves it, since the vendor may have edited it in between.
    """

    default_error_code: str = "invalid_destination"


class BelowMinimumError(ValidationError):
    """
    Raised when the available balance is below the redemption minimum.

    The shortfall is reported so the client can tell the vendor how much
    more they need to earn.
    """

    default_error_code: str = "below_minimum"

    def __init__(self, available_cents: int, minimum_cents: int):
        self.available_cents = available_cents
        self.minimum_cents = minimum_cents
        self.shortfall_cents = minimum_cents - available_cents
        super().__init__(
            f"Available balance ${_usd(available_cents)} is below the "
            f"${_usd(minimum_cents)} payout minimum",
            details={
                "available": _usd(available_cents),
                "minimum": _usd(minimum_cents),
                "shortfall": _usd(self.shortfall_cents),
            },
        )


# =============================================================================
# Not Found Errors (404)
# =============================================================================


class VendorNotFoundError(NotFoundError):
    """Raised when no vendor profile matches the caller or identifier."""

    default_error_code: str = "vendor_not_found"


class PayoutRequestNotFoundError(NotFoundError):
    """Raised when a payout request id does not exist."""

    default_error_code: str = "payout_not_found"


# =============================================================================
# Conflict Errors (409)
# =============================================================================


class DuplicatePayoutRequestError(ConflictError):
    """
    Raised when the vendor already has a payout request in 'requested'.

    Carries the existing request so the client can display it instead of
    creating a new one.
    """

    default_error_code: str = "duplicate_request"

    def __init__(self, existing_id: Any, existing_amount_cents: int):
        self.existing_id = existing_id
        self.existing_amount_cents = existing_amount_cents
        super().__init__(
            "A payout request is already pending for this vendor",
            details={
                "payoutId": str(existing_id),
                "amount": _usd(existing_amount_cents),
            },
        )


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a settlement action is not allowed from the current status.

    Example:
        raise InvalidStateTransitionError(
            "Cannot approve payout request in 'rejected' status",
            details={"current_status": "rejected", "action": "approve"},
        )
    """

    default_error_code: str = "invalid_state_transition"


class LockAcquisitionError(ConflictError):
    """Raised when a distributed lock is already held or times out."""

    default_error_code: str = "lock_acquisition_failed"


class StaleRecordError(ConflictError):
    """Raised when a record changed since it was read (version mismatch)."""

    default_error_code: str = "stale_record"


# =============================================================================
# Payment Processor Errors
# =============================================================================


class ProcessorError(ExternalServiceError):
    """
    Base exception for payment processor failures.

    Any ProcessorError raised during approval moves the payout request to
    'failed'. Settlement never retries automatically; is_retryable only
    tells operators whether re-requesting is likely to help.
    """

    default_error_code: str = "processor_error"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        processor_status: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if processor_status:
            details["processor_status"] = processor_status
        super().__init__(message, error_code=error_code, details=details)
        self.processor_status = processor_status


class ProcessorRejectedError(ProcessorError):
    """The processor refused the payout (bad receiver, denied batch, 4xx)."""

    default_error_code: str = "processor_rejected"


class ProcessorTimeoutError(ProcessorError):
    """
    The processor did not answer within the configured timeout.

    The payout may still have been created server-side, which is why the
    request id is always sent as the idempotency key.
    """

    default_error_code: str = "processor_timeout"
    is_retryable = True


class ProcessorUnavailableError(ProcessorError):
    """Network failure or 5xx response from the processor."""

    default_error_code: str = "processor_unavailable"
    is_retryable = True


# =============================================================================
# Persistence Errors
# =============================================================================


class PersistenceError(BaseApplicationError):
    """
    Raised when a payout request row cannot be stored.

    The redemption endpoint reports it as processing_error; the details
    stay in the logs.
    """

    default_error_code: str = "persistence_error"
