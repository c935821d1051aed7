"""
Settlement service for operator-approved payouts.

This module provides the SettlementService class which drives a
PayoutRequest from 'requested' to a terminal status and is the only code
that talks to the payment processor.

State machine:
    requested -> rejected                    (operator decision)
    requested -> processing -> completed     (processor final success)
    requested -> processing -> failed        (processor error or rejection)

Operators can also flag audited line items as paid outside the flow
(mark_items_paid); that changes no balance or status.

Approval uses a two-phase commit pattern:
1. Phase 1: Transition to PROCESSING, commit
2. Phase 2: Call the processor (outside any transaction) with the request
   id as idempotency key
3. Phase 3: Store the batch id and, on final success, complete

If the processor succeeds but phase 3 fails, the request stays in
PROCESSING with the money sent; this is logged as reconciliation needed
and sync_processing_payouts() picks it up once the batch id is known.

Failed requests are never retried automatically and their withdrawal
ledger entry is not reversed.

Usage:
    from earnings.services import SettlementService

    result = SettlementService.approve(payout_id, operator=request.user)
    if not result.success:
        # request is 'failed'; result.data is the PayoutRequest
        ...
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core.exceptions import NotFoundError, ValidationError
from core.services import BaseService, ServiceResult

from earnings.adapters import CreatePayoutParams, PayPalAdapter, map_batch_status
from earnings.exceptions import (
    InvalidStateTransitionError,
    PayoutRequestNotFoundError,
    ProcessorError,
)
from earnings.locks import DistributedLock, check_version, settlement_lock_key
from earnings.models import PayoutItemAudit, PayoutRequest
from earnings.notifications import notify_payout_failed, notify_payout_processed
from earnings.services.balance_calculator import BalanceCalculator, get_balance_calculator
from earnings.state_machines import PayoutRequestStatus
from earnings.validators import validate_destination

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from earnings.adapters import PayoutBatchResult, PayoutProcessor


# =============================================================================
# Constants
# =============================================================================

# Lock TTL for a single settlement action (seconds); covers the processor timeout
SETTLEMENT_LOCK_TTL = 120

# Processing requests checked per sync run
SYNC_BATCH_SIZE = 100

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"


# =============================================================================
# Settlement Service
# =============================================================================


class SettlementService(BaseService):
    """
    Operator-facing approve/reject flow for payout requests.

    Returns ServiceResult: a processor failure is an expected outcome that
    leaves the request in 'failed' (result.success is False, result.data is
    the request). Invalid actions raise.

    Raises:
        PayoutRequestNotFoundError: Unknown payout id
        InvalidStateTransitionError: Action not allowed from current status
        PayoutDestinationError: Destination no longer valid at approval
        LockAcquisitionError: Another settlement action is in progress
        StaleRecordError: expected_version no longer matches
    """

    # Payment processor - can be injected for testing
    _processor_adapter: PayoutProcessor | None = None
    _balance_calculator: BalanceCalculator | None = None

    @classmethod
    def get_processor_adapter(cls) -> PayoutProcessor:
        return cls._processor_adapter or PayPalAdapter

    @classmethod
    def set_processor_adapter(cls, adapter: PayoutProcessor | None) -> None:
        """Set the processor adapter (for testing)."""
        cls._processor_adapter = adapter

    @classmethod
    def get_balance_calculator(cls) -> BalanceCalculator:
        return cls._balance_calculator or get_balance_calculator()

    @classmethod
    def set_balance_calculator(cls, calculator: BalanceCalculator | None) -> None:
        cls._balance_calculator = calculator

    # =========================================================================
    # Entry Points
    # =========================================================================

    @classmethod
    def process_action(
        cls,
        payout_id: uuid.UUID | str,
        action: str,
        operator=None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult[PayoutRequest]:
        """Dispatch an operator action ("approve" or "reject")."""
        if action == ACTION_APPROVE:
            return cls.approve(payout_id, operator=operator, expected_version=expected_version)
        if action == ACTION_REJECT:
            return cls.reject(
                payout_id, operator=operator, reason=reason, expected_version=expected_version
            )
        raise ValidationError(
            f"Unknown action '{action}'",
            error_code="invalid_action",
            details={"allowed": [ACTION_APPROVE, ACTION_REJECT]},
        )

    @classmethod
    def reject(
        cls,
        payout_id: uuid.UUID | str,
        operator=None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult[PayoutRequest]:
        """
        Reject a 'requested' payout.

        Deletes the request's audit rows so the line items can be claimed
        by a future request. No processor or ledger interaction.
        """
        with DistributedLock(settlement_lock_key(payout_id), ttl=SETTLEMENT_LOCK_TTL, blocking=False):
            with transaction.atomic():
                payout_request = cls._lock_request(payout_id, expected_version)
                cls._require_status(payout_request, PayoutRequestStatus.REQUESTED, ACTION_REJECT)

                payout_request.reject(reason=reason or "", operator=operator)
                payout_request.save()
                deleted, _ = payout_request.audit_items.all().delete()

        cls.get_balance_calculator().invalidate(payout_request.vendor_identifier)
        cls.get_logger().info(
            "Payout request rejected",
            extra={
                "payout_request_id": str(payout_request.id),
                "operator_id": getattr(operator, "id", None),
                "released_items": deleted,
            },
        )
        return ServiceResult.success(payout_request)

    @classmethod
    def approve(
        cls,
        payout_id: uuid.UUID | str,
        operator=None,
        expected_version: int | None = None,
    ) -> ServiceResult[PayoutRequest]:
        """
        Approve a 'requested' payout and send it to the processor.

        A repeated approval of a request that is already processing or
        completed returns success without calling the processor again.
        """
        with DistributedLock(settlement_lock_key(payout_id), ttl=SETTLEMENT_LOCK_TTL, blocking=False):
            return cls._approve_with_lock(payout_id, operator, expected_version)

    @classmethod
    def list_payout_requests(cls, status: str | None = None) -> QuerySet[PayoutRequest]:
        """Settlement queue, oldest first, optionally filtered by status."""
        queryset = PayoutRequest.objects.select_related("vendor", "processed_by")
        if status:
            if status not in PayoutRequestStatus.values:
                raise ValidationError(
                    f"Unknown status '{status}'",
                    details={"allowed": list(PayoutRequestStatus.values)},
                )
            queryset = queryset.filter(status=status)
        return queryset.order_by("created_at")

    @classmethod
    def mark_items_paid(cls, line_item_ids, operator=None) -> ServiceResult[int]:
        """
        Flag claimed line items as paid outside the processor flow.

        Only items captured in a payout request's audit snapshot can be
        marked, and all of them must belong to one vendor. Items that are
        already marked are left alone; result.data is the number newly
        marked. Balances and request statuses are not touched.

        Raises:
            ValidationError: No ids, unknown ids, or more than one vendor
        """
        line_item_ids = sorted(set(line_item_ids or ()))
        if not line_item_ids:
            raise ValidationError("At least one line item id is required")

        with transaction.atomic():
            audits = list(
                PayoutItemAudit.objects.select_for_update(of=("self",))
                .filter(line_item__line_item_id__in=line_item_ids)
                .select_related("line_item", "payout_request")
            )

            found = {audit.line_item.line_item_id for audit in audits}
            unknown = [item_id for item_id in line_item_ids if item_id not in found]
            if unknown:
                raise ValidationError(
                    "Line items are not part of any payout request",
                    details={"unknown": unknown},
                )

            vendor_ids = {audit.payout_request.vendor_id for audit in audits}
            if len(vendor_ids) > 1:
                raise ValidationError(
                    "Line items must belong to the same vendor",
                    details={"vendor_ids": sorted(str(v) for v in vendor_ids)},
                )

            marked = PayoutItemAudit.objects.filter(
                id__in=[audit.id for audit in audits if not audit.manually_marked_paid]
            ).update(manually_marked_paid=True)

        cls.get_logger().info(
            "Line items marked paid",
            extra={
                "operator_id": getattr(operator, "id", None),
                "vendor_id": str(vendor_ids.pop()),
                "line_item_ids": line_item_ids,
                "marked": marked,
            },
        )
        return ServiceResult.success(marked)

    @classmethod
    def sync_processing_payouts(cls, limit: int = SYNC_BATCH_SIZE) -> dict:
        """
        Re-check in-flight batches with the processor.

        Advances PROCESSING requests that have a batch id to COMPLETED or
        FAILED. Requests without a batch id are counted as needing
        reconciliation.

        Returns:
            Dict with checked, completed, failed, unchanged, missing_batch_id
        """
        summary = {"checked": 0, "completed": 0, "failed": 0, "unchanged": 0, "missing_batch_id": 0}
        adapter = cls.get_processor_adapter()

        processing = PayoutRequest.objects.filter(
            status=PayoutRequestStatus.PROCESSING
        ).order_by("processed_at")[:limit]

        for payout_request in processing:
            if not payout_request.processor_batch_id:
                summary["missing_batch_id"] += 1
                cls.get_logger().error(
                    "Processing payout has no batch id - reconciliation needed",
                    extra={"payout_request_id": str(payout_request.id)},
                )
                continue

            summary["checked"] += 1
            try:
                batch = adapter.get_payout_batch(payout_request.processor_batch_id)
                target = map_batch_status(batch.batch_status)
            except ProcessorError as e:
                if e.processor_status and not e.is_retryable:
                    cls._fail_request(payout_request, e)
                    summary["failed"] += 1
                else:
                    cls.get_logger().warning(
                        "Could not sync payout batch",
                        extra={
                            "payout_request_id": str(payout_request.id),
                            "error": str(e),
                        },
                    )
                    summary["unchanged"] += 1
                continue

            if target == PayoutRequestStatus.COMPLETED:
                cls._store_batch_result(payout_request, batch, target)
                summary["completed"] += 1
            else:
                summary["unchanged"] += 1

        cls.get_logger().info("Processing payouts synced", extra=summary)
        return summary

    # =========================================================================
    # Approval Phases
    # =========================================================================

    @classmethod
    def _approve_with_lock(
        cls,
        payout_id: uuid.UUID | str,
        operator,
        expected_version: int | None,
    ) -> ServiceResult[PayoutRequest]:
        logger = cls.get_logger()

        # Phase 1: validate and move to PROCESSING
        with transaction.atomic():
            payout_request = cls._lock_request(payout_id, expected_version)

            if payout_request.status in (
                PayoutRequestStatus.PROCESSING,
                PayoutRequestStatus.COMPLETED,
            ):
                logger.info(
                    "Payout request already approved, returning current state",
                    extra={
                        "payout_request_id": str(payout_request.id),
                        "current_status": payout_request.status,
                    },
                )
                return ServiceResult.success(payout_request)

            cls._require_status(payout_request, PayoutRequestStatus.REQUESTED, ACTION_APPROVE)
            validate_destination(payout_request.destination)

            payout_request.start_processing(operator=operator)
            payout_request.save()

        cls.get_balance_calculator().invalidate(payout_request.vendor_identifier)
        logger.info(
            "Phase 1: Payout request moved to processing",
            extra={
                "payout_request_id": str(payout_request.id),
                "operator_id": getattr(operator, "id", None),
                "amount_cents": payout_request.amount_cents,
            },
        )

        # Phase 2: processor call, outside any transaction
        try:
            batch = cls.get_processor_adapter().create_payout(
                CreatePayoutParams(
                    destination=payout_request.destination,
                    amount_cents=payout_request.amount_cents,
                    currency=payout_request.currency,
                    note=f"Payout {payout_request.reference} ({payout_request.invoice_number})",
                    idempotency_key=str(payout_request.id),
                    sender_item_id=payout_request.reference,
                )
            )
            target = map_batch_status(batch.batch_status)
        except ProcessorError as e:
            logger.error(
                "Processor error during payout",
                extra={
                    "payout_request_id": str(payout_request.id),
                    "error": str(e),
                    "is_retryable": e.is_retryable,
                },
            )
            return cls._fail_request(payout_request, e)
        except Exception as e:
            # Adapter bug or SDK error outside the processor error hierarchy
            logger.error(
                "Unexpected error during payout",
                extra={
                    "payout_request_id": str(payout_request.id),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            return cls._fail_request(payout_request, ProcessorError(str(e) or type(e).__name__))

        # Phase 3: record outcome
        logger.info(
            "Phase 3: Storing processor batch",
            extra={
                "payout_request_id": str(payout_request.id),
                "batch_id": batch.batch_id,
                "batch_status": batch.batch_status,
            },
        )
        try:
            payout_request = cls._store_batch_result(payout_request, batch, target)
        except Exception as e:
            # Processor has the payout but our write failed; the request
            # stays PROCESSING
            logger.error(
                "Failed to store batch after processor success - reconciliation needed",
                extra={
                    "payout_request_id": str(payout_request.id),
                    "batch_id": batch.batch_id,
                    "error": str(e),
                },
                exc_info=True,
            )
            return ServiceResult.success(payout_request)

        logger.info(
            "Payout approval completed",
            extra={
                "payout_request_id": str(payout_request.id),
                "final_status": payout_request.status,
            },
        )
        return ServiceResult.success(payout_request)

    @classmethod
    def _store_batch_result(
        cls,
        payout_request: PayoutRequest,
        batch: PayoutBatchResult,
        target: str,
    ) -> PayoutRequest:
        """Save batch id/status and complete if target is COMPLETED."""
        with transaction.atomic():
            payout_request = PayoutRequest.objects.select_for_update().get(id=payout_request.id)
            if payout_request.status != PayoutRequestStatus.PROCESSING:
                return payout_request

            payout_request.processor_batch_id = batch.batch_id
            payout_request.processor_status = batch.batch_status
            completed = target == PayoutRequestStatus.COMPLETED
            if completed:
                payout_request.complete(processor_status=batch.batch_status)
            payout_request.save()

        if completed:
            cls.get_balance_calculator().invalidate(payout_request.vendor_identifier)
            notify_payout_processed(
                payout_request.vendor,
                {
                    "payout_request_id": str(payout_request.id),
                    "amount": str(payout_request.amount_usd),
                    "reference": payout_request.reference,
                    "batch_id": batch.batch_id,
                },
            )
        return payout_request

    @classmethod
    def _fail_request(
        cls, payout_request: PayoutRequest, error: ProcessorError
    ) -> ServiceResult[PayoutRequest]:
        """Move a PROCESSING request to FAILED and notify the vendor."""
        note = f"PayPal payout failed: {error.message}"
        failed = False
        try:
            with transaction.atomic():
                payout_request = PayoutRequest.objects.select_for_update().get(id=payout_request.id)
                if payout_request.status == PayoutRequestStatus.PROCESSING:
                    payout_request.fail(reason=note, processor_status=error.processor_status or "")
                    payout_request.save()
                    failed = True
        except Exception:
            cls.get_logger().error(
                "Failed to mark payout request as failed - reconciliation needed",
                extra={"payout_request_id": str(payout_request.id), "reason": note},
                exc_info=True,
            )

        if failed:
            cls.get_balance_calculator().invalidate(payout_request.vendor_identifier)
            cls.get_logger().info(
                "Payout request marked as failed",
                extra={"payout_request_id": str(payout_request.id), "reason": note},
            )
            notify_payout_failed(
                payout_request.vendor,
                {
                    "payout_request_id": str(payout_request.id),
                    "amount": str(payout_request.amount_usd),
                    "reference": payout_request.reference,
                    "error": error.message,
                },
            )

        return ServiceResult.failure(
            note,
            error_code=error.error_code,
            data=payout_request,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _lock_request(payout_id, expected_version: int | None) -> PayoutRequest:
        """Load the request with a row lock; must run inside a transaction."""
        try:
            if expected_version is not None:
                return check_version(PayoutRequest, payout_id, expected_version)
            return PayoutRequest.objects.select_for_update().get(id=payout_id)
        except (NotFoundError, PayoutRequest.DoesNotExist, DjangoValidationError, ValueError) as e:
            raise PayoutRequestNotFoundError(
                f"Payout request {payout_id} not found",
                details={"payoutId": str(payout_id)},
            ) from e

    @staticmethod
    def _require_status(payout_request: PayoutRequest, status: str, action: str) -> None:
        if payout_request.status != status:
            raise InvalidStateTransitionError(
                f"Cannot {action} payout request in '{payout_request.status}' status",
                details={
                    "payoutId": str(payout_request.id),
                    "current_status": payout_request.status,
                    "action": action,
                },
            )
