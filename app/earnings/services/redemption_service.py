"""
Redemption service for vendor payout requests.

Turns a vendor's available balance into a PayoutRequest in 'requested'
status and records the matching withdrawal in the ledger.

Flow:
1. Validate the payout destination
2. Read the available balance and enforce the minimum
3. Reject if a 'requested' payout already exists
4. Snapshot eligible line items for audit (informational only)
5. Insert the PayoutRequest with a generated reference and invoice number
6. Append a withdrawal ledger entry for -amount
7. Invalidate the vendor's cached balance

The partial unique constraint on (vendor, status='requested') backs up
step 3, so two concurrent redemptions end with one row and one
DuplicatePayoutRequestError.

If step 6 fails after step 5 committed, the request is kept (an operator
must still see it) and the failure is logged as reconciliation needed.

Usage:
    from earnings.services import RedemptionService

    payout_request = RedemptionService.request_payout(vendor)
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.services import BaseService

from earnings.exceptions import (
    BelowMinimumError,
    DuplicatePayoutRequestError,
    PersistenceError,
    VendorNotFoundError,
)
from earnings.ledger import EntrySource, RecordEntryParams, TransactionType, ledger
from earnings.models import FulfilledLineItem, PayoutItemAudit, PayoutRequest, Vendor
from earnings.services.balance_calculator import BalanceCalculator, get_balance_calculator
from earnings.state_machines import PayoutRequestStatus
from earnings.validators import validate_destination

if TYPE_CHECKING:
    from django.db.models import QuerySet


# =============================================================================
# Constants
# =============================================================================

# Attempts at generating a unique reference/invoice pair
MAX_REFERENCE_ATTEMPTS = 3


def generate_reference(now=None) -> str:
    """PAY-{YYYY}-{MM}-{8 upper-case hex}."""
    now = now or timezone.now()
    return f"PAY-{now:%Y}-{now:%m}-{secrets.token_hex(4).upper()}"


def generate_invoice_number(now=None) -> str:
    """INV-{YYYYMMDD}-{6 upper-case hex}."""
    now = now or timezone.now()
    return f"INV-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def payout_minimum_cents() -> int:
    return getattr(settings, "PAYOUT_MINIMUM_CENTS", 5000)


# =============================================================================
# Redemption Service
# =============================================================================


class RedemptionService(BaseService):
    """
    Vendor-facing payout requests.

    Errors are raised, not returned: every failure here is something the
    vendor has to correct or wait out.

    Raises (from request_payout):
        VendorNotFoundError: Vendor is inactive
        PayoutDestinationError: Destination missing or malformed
        BelowMinimumError: Available balance below PAYOUT_MINIMUM_CENTS
        DuplicatePayoutRequestError: A 'requested' payout already exists
    """

    # Balance calculator - can be injected for testing
    _balance_calculator: BalanceCalculator | None = None

    @classmethod
    def get_balance_calculator(cls) -> BalanceCalculator:
        return cls._balance_calculator or get_balance_calculator()

    @classmethod
    def set_balance_calculator(cls, calculator: BalanceCalculator | None) -> None:
        cls._balance_calculator = calculator

    @classmethod
    def request_payout(cls, vendor: Vendor) -> PayoutRequest:
        """
        Create a payout request for the vendor's full available balance.

        Returns:
            The new PayoutRequest in 'requested' status
        """
        logger = cls.get_logger()
        identifier = vendor.collector_identifier

        if not vendor.is_active:
            raise VendorNotFoundError(
                "Vendor account is inactive",
                details={"vendor_id": str(vendor.id)},
            )

        # Step 1: Destination
        destination = validate_destination(vendor.paypal_email)

        # Step 2: Balance (uncached; money decisions never use a stale read)
        calculator = cls.get_balance_calculator()
        available = calculator.compute(identifier).available
        minimum = payout_minimum_cents()
        if available <= 0 or available < minimum:
            logger.info(
                "Payout request below minimum",
                extra={
                    "vendor_id": str(vendor.id),
                    "available_cents": available,
                    "minimum_cents": minimum,
                },
            )
            raise BelowMinimumError(available_cents=available, minimum_cents=minimum)

        # Step 3: Race guard
        cls._raise_if_pending(vendor)

        # Steps 4-5: Audit snapshot and insert
        payout_request = cls._create_request(vendor, identifier, destination, available)

        logger.info(
            "Payout request created",
            extra={
                "payout_request_id": str(payout_request.id),
                "vendor_id": str(vendor.id),
                "amount_cents": payout_request.amount_cents,
                "reference": payout_request.reference,
            },
        )

        # Step 6: Ledger withdrawal (request row is already committed)
        try:
            cls._record_withdrawal(vendor, payout_request)
        except Exception as e:
            logger.error(
                "Failed to record payout withdrawal - reconciliation needed",
                extra={
                    "payout_request_id": str(payout_request.id),
                    "vendor_id": str(vendor.id),
                    "amount_cents": payout_request.amount_cents,
                    "error": str(e),
                },
                exc_info=True,
            )

        # Step 7: Cache
        calculator.invalidate(identifier)

        return payout_request

    @classmethod
    def history(cls, vendor: Vendor) -> QuerySet[PayoutRequest]:
        """The vendor's payout requests, newest first."""
        return PayoutRequest.objects.filter(vendor=vendor).order_by("-created_at")

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _raise_if_pending(vendor: Vendor) -> None:
        existing = (
            PayoutRequest.objects.filter(vendor=vendor, status=PayoutRequestStatus.REQUESTED)
            .first()
        )
        if existing is not None:
            raise DuplicatePayoutRequestError(existing.id, existing.amount_cents)

    @classmethod
    def _create_request(
        cls,
        vendor: Vendor,
        identifier: str,
        destination: str,
        amount_cents: int,
    ) -> PayoutRequest:
        """
        Insert the request and its audit rows in one transaction.

        A unique-constraint violation is either the one-'requested'-row
        guard (another redemption won the race) or a reference collision,
        which is retried with fresh numbers.
        """
        currency = getattr(settings, "PAYOUT_CURRENCY", "USD")

        for attempt in range(1, MAX_REFERENCE_ATTEMPTS + 1):
            try:
                with transaction.atomic():
                    items = list(
                        FulfilledLineItem.objects.eligible_for_audit(vendor)
                        .select_for_update(of=("self",))
                        .only("id", "payout_cents")
                    )
                    payout_request = PayoutRequest.objects.create(
                        vendor=vendor,
                        vendor_identifier=identifier,
                        amount_cents=amount_cents,
                        currency=currency,
                        destination=destination,
                        reference=generate_reference(),
                        invoice_number=generate_invoice_number(),
                        notes=f"Requested {amount_cents} credits to {destination}",
                    )
                    PayoutItemAudit.objects.bulk_create(
                        [
                            PayoutItemAudit(
                                payout_request=payout_request,
                                line_item_id=item.id,
                                payout_cents=item.payout_cents,
                            )
                            for item in items
                        ]
                    )
                return payout_request
            except IntegrityError:
                # Lost the race to another redemption for this vendor
                cls._raise_if_pending(vendor)
                cls.get_logger().warning(
                    "Payout reference collision, regenerating",
                    extra={"vendor_id": str(vendor.id), "attempt": attempt},
                )

        raise PersistenceError(
            "Could not allocate a unique payout reference",
            details={"vendor_id": str(vendor.id)},
        )

    @staticmethod
    def _record_withdrawal(vendor: Vendor, payout_request: PayoutRequest) -> None:
        with transaction.atomic():
            ledger.record_entry(
                RecordEntryParams(
                    identifier=payout_request.vendor_identifier,
                    vendor_id=vendor.id,
                    transaction_type=TransactionType.WITHDRAWAL,
                    credits_amount=-payout_request.amount_cents,
                    source=EntrySource.PAYOUT,
                    idempotency_key=f"payout_request:{payout_request.id}",
                    reference_type="payout_request",
                    reference_id=str(payout_request.id),
                    description=f"Payout {payout_request.reference}",
                    created_by="redemption_service",
                )
            )
            Vendor.adjust_available_credits(vendor.id, -payout_request.amount_cents)
