"""
Earnings service for crediting and debiting vendors.

The write side of the ledger outside payouts and appreciation:
- Fulfilled line items credit the vendor's share (source: purchase)
- Subscription revenue credits a deposit the appreciation job works on
- Refunds deduct a withdrawal (source: refund)

Every call is idempotent on a key derived from the originating entity,
so webhook redelivery or a retried task never credits twice.

Usage:
    from earnings.services import EarningsService

    EarningsService.record_fulfillment(line_item)
    EarningsService.record_subscription_credit(vendor, 100000, "sub_2026_10")
    EarningsService.record_refund_deduction(vendor, 2500, "refund_881", "Damaged")
"""

from __future__ import annotations

import math
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import ValidationError
from core.services import BaseService

from earnings.ledger import EntrySource, LedgerEntry, RecordEntryParams, TransactionType, ledger
from earnings.models import FulfilledLineItem, Vendor
from earnings.services.balance_calculator import BalanceCalculator, get_balance_calculator
from earnings.state_machines import FulfillmentStatus


def vendor_payout_cents(price_cents: int) -> int:
    """Vendor share of a sale: floor(price * VENDOR_PAYOUT_PERCENT / 100)."""
    percent = Decimal(str(getattr(settings, "VENDOR_PAYOUT_PERCENT", 25)))
    return math.floor(Decimal(price_cents) * percent / 100)


class EarningsService(BaseService):
    """Idempotent ledger credits and deductions for vendors."""

    _balance_calculator: BalanceCalculator | None = None

    @classmethod
    def get_balance_calculator(cls) -> BalanceCalculator:
        return cls._balance_calculator or get_balance_calculator()

    @classmethod
    def set_balance_calculator(cls, calculator: BalanceCalculator | None) -> None:
        cls._balance_calculator = calculator

    @classmethod
    def record_fulfillment(cls, line_item: FulfilledLineItem) -> LedgerEntry | None:
        """
        Credit the vendor's share of a fulfilled line item.

        Returns:
            The deposit entry (the existing one on a repeat call), or None
            when the share rounds to zero

        Raises:
            ValidationError: If the line item is not fulfilled
        """
        if line_item.fulfillment_status != FulfillmentStatus.FULFILLED:
            raise ValidationError(
                "Only fulfilled line items earn a payout",
                error_code="line_item_not_fulfilled",
                details={
                    "line_item_id": line_item.line_item_id,
                    "fulfillment_status": line_item.fulfillment_status,
                },
            )

        payout_cents = vendor_payout_cents(line_item.price_cents)
        vendor = line_item.vendor

        with transaction.atomic():
            update_fields = ["payout_cents", "updated_at"]
            line_item.payout_cents = payout_cents
            if line_item.fulfilled_at is None:
                line_item.fulfilled_at = timezone.now()
                update_fields.append("fulfilled_at")
            line_item.save(update_fields=update_fields)

            if payout_cents <= 0:
                cls.get_logger().info(
                    "Line item payout rounds to zero, nothing credited",
                    extra={"line_item_id": line_item.line_item_id},
                )
                return None

            entry = cls._append(
                vendor,
                RecordEntryParams(
                    identifier=vendor.collector_identifier,
                    vendor_id=vendor.id,
                    transaction_type=TransactionType.DEPOSIT,
                    credits_amount=payout_cents,
                    source=EntrySource.PURCHASE,
                    idempotency_key=f"payout_earned:{line_item.line_item_id}",
                    reference_type="line_item",
                    reference_id=line_item.line_item_id,
                    description=f"Earnings for {line_item.order_name or line_item.order_id}",
                    metadata={
                        "order_id": line_item.order_id,
                        "product_id": line_item.product_id,
                        "price_cents": line_item.price_cents,
                    },
                    created_by="earnings_service",
                ),
            )

        cls.get_balance_calculator().invalidate(vendor.collector_identifier)
        return entry

    @classmethod
    def record_subscription_credit(
        cls, vendor: Vendor, credits: int, reference_id: str
    ) -> LedgerEntry:
        """Credit a subscription deposit (eligible for appreciation)."""
        if credits <= 0:
            raise ValidationError(
                "Subscription credits must be positive",
                details={"credits": credits},
            )
        with transaction.atomic():
            entry = cls._append(
                vendor,
                RecordEntryParams(
                    identifier=vendor.collector_identifier,
                    vendor_id=vendor.id,
                    transaction_type=TransactionType.DEPOSIT,
                    credits_amount=credits,
                    source=EntrySource.SUBSCRIPTION,
                    idempotency_key=f"subscription_credit:{reference_id}",
                    reference_type="subscription",
                    reference_id=reference_id,
                    description="Subscription credit",
                    created_by="earnings_service",
                ),
            )

        cls.get_balance_calculator().invalidate(vendor.collector_identifier)
        return entry

    @classmethod
    def record_refund_deduction(
        cls, vendor: Vendor, credits: int, reference_id: str, reason: str = ""
    ) -> LedgerEntry:
        """
        Deduct refunded earnings from the vendor.

        credits is the positive amount to deduct; the entry is negative.
        The available balance is floored at zero, so a deduction larger
        than the balance leaves the ledger sum negative until new earnings
        arrive.
        """
        if credits <= 0:
            raise ValidationError(
                "Refund deduction must be positive",
                details={"credits": credits},
            )
        with transaction.atomic():
            entry = cls._append(
                vendor,
                RecordEntryParams(
                    identifier=vendor.collector_identifier,
                    vendor_id=vendor.id,
                    transaction_type=TransactionType.WITHDRAWAL,
                    credits_amount=-credits,
                    source=EntrySource.REFUND,
                    idempotency_key=f"refund_deduction:{reference_id}",
                    reference_type="refund",
                    reference_id=reference_id,
                    description=reason or "Refund deduction",
                    metadata={"reason": reason} if reason else {},
                    created_by="earnings_service",
                ),
            )

        cls.get_balance_calculator().invalidate(vendor.collector_identifier)
        return entry

    @classmethod
    def _append(cls, vendor: Vendor, params: RecordEntryParams) -> LedgerEntry:
        """Append an entry and bump the vendor counter once. Must run inside a transaction."""
        existing = LedgerEntry.objects.filter(idempotency_key=params.idempotency_key).first()
        entry = ledger.record_entry(params)
        if existing is None:
            Vendor.adjust_available_credits(vendor.id, params.credits_amount)
            cls.get_logger().info(
                "Ledger entry recorded",
                extra={
                    "entry_id": str(entry.id),
                    "vendor_id": str(vendor.id),
                    "source": params.source,
                    "credits_amount": params.credits_amount,
                },
            )
        return entry
