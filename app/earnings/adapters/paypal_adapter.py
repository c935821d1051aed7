"""
PayPal Payouts API adapter.

This module provides the PayPalAdapter class which encapsulates every
PayPal call made by settlement. All calls go through this adapter to get
consistent timeouts, idempotency, error translation and timing logs.

Features:
- Explicit timeout on every HTTP call; a timeout is a processor error
- PayPal-Request-Id idempotency header (the payout request id)
- Error translation to earnings ProcessorError subclasses
- Structured logging with duration_ms

Configuration (via settings):
- PAYPAL_API_BASE: e.g. https://api-m.sandbox.paypal.com
- PAYPAL_CLIENT_ID / PAYPAL_CLIENT_SECRET: REST app credentials
- PAYPAL_API_TIMEOUT_SECONDS: Call timeout (default: 10)

Usage:
    from earnings.adapters import CreatePayoutParams, PayPalAdapter

    result = PayPalAdapter.create_payout(
        CreatePayoutParams(
            destination="vendor@example.com",
            amount_cents=12000,
            currency="USD",
            note="Payout PAY-2026-10-1A2B3C4D",
            idempotency_key=str(payout_request.id),
        )
    )
    result.batch_id, result.batch_status
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import requests
from django.conf import settings

from earnings.adapters.base import CreatePayoutParams, PayoutBatchResult
from earnings.exceptions import (
    ProcessorError,
    ProcessorRejectedError,
    ProcessorTimeoutError,
    ProcessorUnavailableError,
)
from earnings.ledger.types import credits_to_usd
from earnings.state_machines import PayoutRequestStatus

# =============================================================================
# Batch Status Mapping
# =============================================================================

IN_FLIGHT_BATCH_STATUSES = frozenset({"PENDING", "PROCESSING", "NEW"})
SUCCESS_BATCH_STATUSES = frozenset({"SUCCESS"})
FAILED_BATCH_STATUSES = frozenset({"DENIED", "CANCELED", "FAILED"})


def map_batch_status(batch_status: str) -> str:
    """
    Map a PayPal batch status to a PayoutRequestStatus.

    Returns:
        PROCESSING for in-flight statuses, COMPLETED for final success

    Raises:
        ProcessorRejectedError: For a final-failure status
    """
    status = (batch_status or "").upper()
    if status in SUCCESS_BATCH_STATUSES:
        return PayoutRequestStatus.COMPLETED
    if status in FAILED_BATCH_STATUSES:
        raise ProcessorRejectedError(
            f"Payout batch {status.lower()}",
            processor_status=status,
        )
    if status not in IN_FLIGHT_BATCH_STATUSES:
        logging.getLogger(__name__).warning(
            "Unknown PayPal batch status, treating as in flight",
            extra={"batch_status": batch_status},
        )
    return PayoutRequestStatus.PROCESSING


# =============================================================================
# PayPal Adapter
# =============================================================================


class PayPalAdapter:
    """
    Adapter for the PayPal Payouts REST API.

    Thread-safe: the cached OAuth token is guarded by a lock so Celery
    workers and web threads can share it.
    """

    TOKEN_PATH = "/v1/oauth2/token"
    PAYOUTS_PATH = "/v1/payments/payouts"
    # Refresh this many seconds before PayPal says the token expires
    TOKEN_EXPIRY_MARGIN = 60

    _token: str | None = None
    _token_expires_at: float = 0.0
    _token_lock = threading.Lock()

    # =========================================================================
    # Configuration
    # =========================================================================

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def _base_url() -> str:
        return settings.PAYPAL_API_BASE.rstrip("/")

    @staticmethod
    def _timeout() -> float:
        return getattr(settings, "PAYPAL_API_TIMEOUT_SECONDS", 10)

    @classmethod
    def reset_token(cls) -> None:
        with cls._token_lock:
            cls._token = None
            cls._token_expires_at = 0.0

    @classmethod
    def _get_access_token(cls) -> str:
        with cls._token_lock:
            if cls._token and time.monotonic() < cls._token_expires_at:
                return cls._token

            response = cls._request(
                "post",
                cls.TOKEN_PATH,
                operation="oauth_token",
                auth=(settings.PAYPAL_CLIENT_ID, settings.PAYPAL_CLIENT_SECRET),
                data={"grant_type": "client_credentials"},
                headers={"Accept": "application/json"},
            )
            try:
                token = response["access_token"]
                expires_in = int(response.get("expires_in", 0))
            except (KeyError, TypeError, AttributeError, ValueError) as e:
                cls.get_logger().error(
                    "Unexpected PayPal token response",
                    extra={"operation": "oauth_token", "error": str(e)},
                )
                raise ProcessorError(
                    "Unexpected PayPal response: no access token",
                    details={"missing": str(e)},
                ) from e
            cls._token = token
            cls._token_expires_at = time.monotonic() + max(
                expires_in - cls.TOKEN_EXPIRY_MARGIN, 0
            )
            return cls._token

    # =========================================================================
    # Core Operations
    # =========================================================================

    @classmethod
    def create_payout(cls, params: CreatePayoutParams) -> PayoutBatchResult:
        """
        Create a single-item payout batch.

        The idempotency key is sent both as the PayPal-Request-Id header and
        as sender_batch_id, so PayPal returns the original batch on a retry.

        Raises:
            ProcessorRejectedError: PayPal refused the request (4xx)
            ProcessorTimeoutError: No response within the timeout
            ProcessorUnavailableError: Network failure or 5xx
        """
        body = {
            "sender_batch_header": {
                "sender_batch_id": params.idempotency_key,
                "email_subject": "You have a payout!",
                "email_message": params.note,
            },
            "items": [
                {
                    "recipient_type": "EMAIL",
                    "receiver": params.destination,
                    "amount": {
                        "value": f"{credits_to_usd(params.amount_cents):.2f}",
                        "currency": params.currency,
                    },
                    "note": params.note,
                    "sender_item_id": params.sender_item_id or params.idempotency_key,
                }
            ],
        }
        response = cls._request(
            "post",
            cls.PAYOUTS_PATH,
            operation="create_payout",
            json=body,
            headers={
                "Authorization": f"Bearer {cls._get_access_token()}",
                "Content-Type": "application/json",
                "PayPal-Request-Id": params.idempotency_key,
            },
            log_context={
                "amount_cents": params.amount_cents,
                "idempotency_key": params.idempotency_key,
            },
        )
        return cls._batch_result(response)

    @classmethod
    def get_payout_batch(cls, batch_id: str) -> PayoutBatchResult:
        """Fetch the current status of a payout batch."""
        response = cls._request(
            "get",
            f"{cls.PAYOUTS_PATH}/{batch_id}",
            operation="get_payout_batch",
            headers={"Authorization": f"Bearer {cls._get_access_token()}"},
            log_context={"batch_id": batch_id},
        )
        return cls._batch_result(response)

    @staticmethod
    def _batch_result(response: dict[str, Any]) -> PayoutBatchResult:
        try:
            header = response["batch_header"]
            return PayoutBatchResult(
                batch_id=header["payout_batch_id"],
                batch_status=header["batch_status"],
                raw_response=response,
            )
        except (KeyError, TypeError) as e:
            raise ProcessorError(
                "Unexpected PayPal response: missing batch header",
                details={"missing": str(e)},
            ) from e

    # =========================================================================
    # HTTP
    # =========================================================================

    @classmethod
    def _request(
        cls,
        method: str,
        path: str,
        operation: str,
        log_context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        logger = cls.get_logger()
        log_context = {"operation": operation, **(log_context or {})}

        start_time = time.time()
        logger.info("Starting PayPal operation", extra=log_context)

        try:
            response = requests.request(
                method,
                f"{cls._base_url()}{path}",
                timeout=cls._timeout(),
                **kwargs,
            )
        except requests.Timeout as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "PayPal request timed out",
                extra={**log_context, "duration_ms": duration_ms},
            )
            raise ProcessorTimeoutError(
                f"PayPal did not respond within {cls._timeout()}s"
            ) from e
        except requests.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Connection error to PayPal",
                extra={**log_context, "duration_ms": duration_ms},
                exc_info=True,
            )
            raise ProcessorUnavailableError(f"PayPal unreachable: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        log_context = {
            **log_context,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }

        if response.status_code >= 500 or response.status_code == 429:
            logger.error("PayPal unavailable", extra=log_context)
            raise ProcessorUnavailableError(
                cls._error_message(response),
                processor_status=str(response.status_code),
            )
        if response.status_code >= 400:
            logger.warning("PayPal rejected request", extra=log_context)
            raise ProcessorRejectedError(
                cls._error_message(response),
                processor_status=str(response.status_code),
            )

        logger.info("PayPal operation completed", extra=log_context)
        try:
            return response.json()
        except ValueError as e:
            raise ProcessorError("PayPal returned a non-JSON body") from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if not isinstance(body, dict):
            return f"HTTP {response.status_code}"
        return (
            body.get("message")
            or body.get("error_description")
            or f"HTTP {response.status_code}"
        )


__all__ = [
    "PayPalAdapter",
    "map_batch_status",
]
