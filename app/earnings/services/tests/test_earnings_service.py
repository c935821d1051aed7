"""
Tests for EarningsService.

Each credit or deduction must land in the ledger exactly once no matter
how often the originating event is replayed.
"""

import pytest

from core.exceptions import ValidationError
from earnings.ledger import EntrySource, LedgerEntry, TransactionType
from earnings.services import EarningsService, vendor_payout_cents
from earnings.services.balance_calculator import get_balance_calculator
from earnings.state_machines import FulfillmentStatus
from earnings.tests.factories import FulfilledLineItemFactory


class TestVendorPayoutCents:
    @pytest.mark.parametrize(
        "price,expected",
        [(10000, 2500), (999, 249), (3, 0), (0, 0)],
    )
    def test_floors_vendor_share(self, price, expected):
        assert vendor_payout_cents(price) == expected

    def test_uses_configured_percent(self, settings):
        settings.VENDOR_PAYOUT_PERCENT = 40

        assert vendor_payout_cents(10000) == 4000


class TestRecordFulfillment:
    def test_credits_vendor_share(self, vendor):
        item = FulfilledLineItemFactory(vendor=vendor, price_cents=10000, payout_cents=0)

        entry = EarningsService.record_fulfillment(item)

        assert entry.credits_amount == 2500
        assert entry.transaction_type == TransactionType.DEPOSIT
        assert entry.source == EntrySource.PURCHASE
        assert entry.idempotency_key == f"payout_earned:{item.line_item_id}"
        assert entry.reference_id == item.line_item_id
        item.refresh_from_db()
        assert item.payout_cents == 2500

    def test_replay_credits_once(self, vendor):
        item = FulfilledLineItemFactory(vendor=vendor, price_cents=10000)

        first = EarningsService.record_fulfillment(item)
        second = EarningsService.record_fulfillment(item)

        assert first.id == second.id
        assert LedgerEntry.objects.filter(identifier=vendor.collector_identifier).count() == 1
        vendor.refresh_from_db()
        assert vendor.available_credits == 2500

    def test_unfulfilled_item_is_rejected(self, vendor):
        item = FulfilledLineItemFactory(
            vendor=vendor, fulfillment_status=FulfillmentStatus.UNFULFILLED
        )

        with pytest.raises(ValidationError) as exc_info:
            EarningsService.record_fulfillment(item)

        assert exc_info.value.error_code == "line_item_not_fulfilled"
        assert not LedgerEntry.objects.exists()

    def test_zero_share_writes_nothing(self, vendor):
        item = FulfilledLineItemFactory(vendor=vendor, price_cents=3)

        assert EarningsService.record_fulfillment(item) is None
        assert not LedgerEntry.objects.exists()

    def test_sets_fulfilled_at_when_missing(self, vendor):
        item = FulfilledLineItemFactory(vendor=vendor, fulfilled_at=None)

        EarningsService.record_fulfillment(item)

        item.refresh_from_db()
        assert item.fulfilled_at is not None

    def test_invalidates_cached_balance(self, vendor):
        calculator = get_balance_calculator()
        assert calculator.balance(vendor.collector_identifier).available == 0
        item = FulfilledLineItemFactory(vendor=vendor, price_cents=10000)

        EarningsService.record_fulfillment(item)

        assert calculator.balance(vendor.collector_identifier).available == 2500


class TestSubscriptionCredit:
    def test_records_appreciable_deposit(self, vendor):
        entry = EarningsService.record_subscription_credit(vendor, 100000, "sub_2026_10")

        assert entry.source == EntrySource.SUBSCRIPTION
        assert entry.credits_amount == 100000
        assert entry.last_appreciation_tier_months is None
        assert entry.idempotency_key == "subscription_credit:sub_2026_10"

    def test_replay_is_idempotent(self, vendor):
        EarningsService.record_subscription_credit(vendor, 100000, "sub_2026_10")
        EarningsService.record_subscription_credit(vendor, 100000, "sub_2026_10")

        vendor.refresh_from_db()
        assert vendor.available_credits == 100000
        assert LedgerEntry.objects.count() == 1

    def test_non_positive_credits_rejected(self, vendor):
        with pytest.raises(ValidationError):
            EarningsService.record_subscription_credit(vendor, 0, "sub_zero")


class TestRefundDeduction:
    def test_records_negative_withdrawal(self, funded_vendor):
        entry = EarningsService.record_refund_deduction(
            funded_vendor, 2500, "refund_881", reason="Damaged in transit"
        )

        assert entry.transaction_type == TransactionType.WITHDRAWAL
        assert entry.source == EntrySource.REFUND
        assert entry.credits_amount == -2500
        assert entry.metadata == {"reason": "Damaged in transit"}
        snapshot = get_balance_calculator().balance(funded_vendor.collector_identifier)
        assert snapshot.available == 9500

    def test_deduction_larger_than_balance_floors_available(self, vendor):
        EarningsService.record_refund_deduction(vendor, 2500, "refund_882")

        snapshot = get_balance_calculator().balance(vendor.collector_identifier)
        assert snapshot.available == 0

    def test_non_positive_deduction_rejected(self, vendor):
        with pytest.raises(ValidationError):
            EarningsService.record_refund_deduction(vendor, -5, "refund_bad")
