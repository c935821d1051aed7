"""
Tests for RedemptionService.

Covers the happy path, every rejection reason, the one-requested-row
guard, the audit snapshot and the withdrawal-failure path.
"""

import re
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest
from django.db import IntegrityError, connection, transaction

from earnings.exceptions import (
    BelowMinimumError,
    DuplicatePayoutRequestError,
    PayoutDestinationError,
    VendorNotFoundError,
)
from earnings.ledger import EntrySource, LedgerEntry, TransactionType
from earnings.models import PayoutItemAudit, PayoutRequest, Vendor
from earnings.services import (
    RedemptionService,
    generate_invoice_number,
    generate_reference,
)
from earnings.services.balance_calculator import get_balance_calculator
from earnings.state_machines import PayoutRequestStatus
from earnings.tests.factories import (
    FulfilledLineItemFactory,
    PayoutRequestFactory,
    VendorFactory,
    credit_vendor,
)


class TestReferenceGeneration:
    def test_reference_format(self):
        assert re.fullmatch(r"PAY-\d{4}-\d{2}-[0-9A-F]{8}", generate_reference())

    def test_invoice_number_format(self):
        assert re.fullmatch(r"INV-\d{8}-[0-9A-F]{6}", generate_invoice_number())

    def test_references_are_random(self):
        assert len({generate_reference() for _ in range(20)}) == 20


class TestRequestPayout:
    """Tests for RedemptionService.request_payout()."""

    def test_creates_requested_payout_for_full_balance(self, funded_vendor):
        payout_request = RedemptionService.request_payout(funded_vendor)

        assert payout_request.status == PayoutRequestStatus.REQUESTED
        assert payout_request.amount_cents == 12000
        assert payout_request.currency == "USD"
        assert payout_request.destination == funded_vendor.paypal_email
        assert payout_request.vendor_identifier == funded_vendor.collector_identifier
        assert payout_request.version == 1

    def test_records_matching_withdrawal(self, funded_vendor):
        payout_request = RedemptionService.request_payout(funded_vendor)

        entries = LedgerEntry.objects.filter(
            reference_type="payout_request", reference_id=str(payout_request.id)
        )
        assert entries.count() == 1
        withdrawal = entries.get()
        assert withdrawal.transaction_type == TransactionType.WITHDRAWAL
        assert withdrawal.source == EntrySource.PAYOUT
        assert withdrawal.credits_amount == -12000
        assert withdrawal.identifier == funded_vendor.collector_identifier

    def test_available_drops_to_zero(self, funded_vendor):
        RedemptionService.request_payout(funded_vendor)

        snapshot = get_balance_calculator().balance(funded_vendor.collector_identifier)
        assert snapshot.available == 0
        assert snapshot.held == 12000

    def test_vendor_counter_is_decremented(self, funded_vendor):
        RedemptionService.request_payout(funded_vendor)

        funded_vendor.refresh_from_db()
        assert funded_vendor.available_credits == 0

    def test_invalidates_cached_balance(self, funded_vendor):
        calculator = get_balance_calculator()
        identifier = funded_vendor.collector_identifier
        assert calculator.balance(identifier).available == 12000

        RedemptionService.request_payout(funded_vendor)

        assert calculator.balance(identifier).available == 0

    def test_balance_exactly_at_minimum_is_allowed(self, vendor):
        credit_vendor(vendor, 5000)

        payout_request = RedemptionService.request_payout(vendor)

        assert payout_request.amount_cents == 5000

    def test_below_minimum_raises_with_shortfall(self, vendor):
        credit_vendor(vendor, 4500)

        with pytest.raises(BelowMinimumError) as exc_info:
            RedemptionService.request_payout(vendor)

        assert exc_info.value.error_code == "below_minimum"
        assert exc_info.value.details == {
            "available": "45.00",
            "minimum": "50.00",
            "shortfall": "5.00",
        }
        assert not PayoutRequest.objects.exists()

    def test_zero_balance_raises_below_minimum(self, vendor):
        with pytest.raises(BelowMinimumError):
            RedemptionService.request_payout(vendor)

    def test_missing_destination_raises(self, db):
        vendor = VendorFactory(paypal_email="")
        credit_vendor(vendor, 12000)

        with pytest.raises(PayoutDestinationError):
            RedemptionService.request_payout(vendor)

        assert not PayoutRequest.objects.exists()

    def test_malformed_destination_raises(self, db):
        vendor = VendorFactory(paypal_email="not-an-email")
        credit_vendor(vendor, 12000)

        with pytest.raises(PayoutDestinationError) as exc_info:
            RedemptionService.request_payout(vendor)

        assert exc_info.value.error_code == "invalid_destination"

    def test_inactive_vendor_raises(self, db):
        vendor = VendorFactory(is_active=False)
        credit_vendor(vendor, 12000)

        with pytest.raises(VendorNotFoundError):
            RedemptionService.request_payout(vendor)

    def test_uses_configured_minimum(self, vendor, settings):
        settings.PAYOUT_MINIMUM_CENTS = 1000
        credit_vendor(vendor, 1500)

        assert RedemptionService.request_payout(vendor).amount_cents == 1500


class TestDuplicateGuard:
    """At most one 'requested' payout per vendor."""

    def test_second_request_raises_with_existing(self, requested_payout):
        vendor = requested_payout.vendor
        credit_vendor(vendor, 9000)

        with pytest.raises(DuplicatePayoutRequestError) as exc_info:
            RedemptionService.request_payout(vendor)

        assert exc_info.value.existing_id == requested_payout.id
        assert exc_info.value.details["payoutId"] == str(requested_payout.id)
        assert exc_info.value.details["amount"] == "120.00"
        assert PayoutRequest.objects.filter(vendor=vendor).count() == 1

    def test_new_request_allowed_after_rejection(self, requested_payout, operator):
        vendor = requested_payout.vendor
        requested_payout.reject(reason="wrong account", operator=operator)
        requested_payout.save()
        credit_vendor(vendor, 6000)

        payout_request = RedemptionService.request_payout(vendor)

        assert payout_request.amount_cents == 6000

    def test_database_constraint_backs_the_guard(self, vendor):
        PayoutRequestFactory(vendor=vendor)

        with pytest.raises(IntegrityError), transaction.atomic():
            PayoutRequestFactory(vendor=vendor)

    def test_lost_race_reports_duplicate(self, mocker, funded_vendor):
        """If the pre-check misses a concurrent insert, the constraint decides."""
        winner = PayoutRequestFactory(vendor=funded_vendor, amount_cents=12000)
        mocker.patch.object(
            RedemptionService,
            "_raise_if_pending",
            side_effect=[None, DuplicatePayoutRequestError(winner.id, winner.amount_cents)],
        )

        with pytest.raises(DuplicatePayoutRequestError) as exc_info:
            RedemptionService.request_payout(funded_vendor)

        assert exc_info.value.existing_id == winner.id
        assert PayoutRequest.objects.filter(vendor=funded_vendor).count() == 1


@pytest.mark.postgres
@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(
    connection.vendor != "postgresql",
    reason="concurrent writers need PostgreSQL row locking",
)
class TestConcurrentRedemption:
    """Two real callers redeeming the same balance at once."""

    def test_only_one_request_wins(self, mocker):
        vendor = VendorFactory()
        credit_vendor(vendor, 12000)
        vendor_pk = vendor.pk

        # Both callers pass the pending check before either inserts
        barrier = threading.Barrier(2, timeout=10)
        checked = threading.local()
        check_pending = RedemptionService._raise_if_pending

        def check_then_wait(vendor):
            check_pending(vendor)
            if not getattr(checked, "done", False):
                checked.done = True
                barrier.wait()

        mocker.patch.object(RedemptionService, "_raise_if_pending", side_effect=check_then_wait)

        def redeem():
            connection.close()  # Force new connection for thread
            try:
                return RedemptionService.request_payout(Vendor.objects.get(pk=vendor_pk))
            except DuplicatePayoutRequestError as e:
                return e
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(redeem) for _ in range(2)]
            outcomes = [future.result() for future in as_completed(futures)]

        created = [o for o in outcomes if isinstance(o, PayoutRequest)]
        duplicates = [o for o in outcomes if isinstance(o, DuplicatePayoutRequestError)]
        assert len(created) == 1
        assert len(duplicates) == 1
        assert duplicates[0].existing_id == created[0].id
        assert (
            PayoutRequest.objects.filter(
                vendor_id=vendor_pk, status=PayoutRequestStatus.REQUESTED
            ).count()
            == 1
        )
        assert (
            LedgerEntry.objects.filter(
                identifier=vendor.collector_identifier,
                transaction_type=TransactionType.WITHDRAWAL,
            ).count()
            == 1
        )


class TestAuditSnapshot:
    """Eligible line items are snapshotted for review, never used for the amount."""

    def test_snapshots_unclaimed_fulfilled_items(self, funded_vendor):
        items = FulfilledLineItemFactory.create_batch(2, vendor=funded_vendor)
        FulfilledLineItemFactory(vendor=funded_vendor, fulfillment_status="unfulfilled")

        payout_request = RedemptionService.request_payout(funded_vendor)

        audited = set(payout_request.audit_items.values_list("line_item_id", flat=True))
        assert audited == {item.id for item in items}

    def test_amount_ignores_line_items(self, funded_vendor):
        FulfilledLineItemFactory(vendor=funded_vendor, price_cents=400000)

        payout_request = RedemptionService.request_payout(funded_vendor)

        assert payout_request.amount_cents == 12000

    def test_claimed_items_are_not_snapshotted_twice(self, requested_payout, operator):
        vendor = requested_payout.vendor
        claimed = FulfilledLineItemFactory(vendor=vendor)
        PayoutItemAudit.objects.create(
            payout_request=requested_payout, line_item=claimed, payout_cents=claimed.payout_cents
        )
        requested_payout.start_processing(operator=operator)
        requested_payout.save()
        fresh = FulfilledLineItemFactory(vendor=vendor)
        credit_vendor(vendor, 6000)

        payout_request = RedemptionService.request_payout(vendor)

        assert list(payout_request.audit_items.values_list("line_item_id", flat=True)) == [
            fresh.id
        ]


class TestWithdrawalFailure:
    def test_request_kept_when_withdrawal_fails(self, mocker, funded_vendor):
        mocker.patch.object(
            RedemptionService, "_record_withdrawal", side_effect=RuntimeError("ledger down")
        )
        logger = mocker.patch.object(RedemptionService, "get_logger")

        payout_request = RedemptionService.request_payout(funded_vendor)

        assert PayoutRequest.objects.filter(id=payout_request.id).exists()
        assert not LedgerEntry.objects.filter(reference_type="payout_request").exists()
        messages = [call.args[0] for call in logger.return_value.error.call_args_list]
        assert any("reconciliation needed" in message for message in messages)


class TestHistory:
    def test_newest_first_and_scoped_to_vendor(self, requested_payout, operator):
        vendor = requested_payout.vendor
        requested_payout.reject(reason="", operator=operator)
        requested_payout.save()
        credit_vendor(vendor, 6000)
        newer = RedemptionService.request_payout(vendor)
        PayoutRequestFactory()

        history = list(RedemptionService.history(vendor))

        assert [p.id for p in history] == [newer.id, requested_payout.id]
        assert Vendor.objects.count() == 2
