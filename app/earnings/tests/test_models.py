"""
Tests for earnings models.

Covers the vendor ledger key, payout request state machine and version
counter, and the database constraints.
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed

from earnings.models import PayoutItemAudit, PayoutRequest, Vendor
from earnings.state_machines import AppreciationRunStatus, PayoutRequestStatus
from earnings.tests.factories import (
    AppreciationRunFactory,
    FulfilledLineItemFactory,
    PayoutRequestFactory,
    VendorFactory,
)


class TestVendor:
    def test_identifier_is_user_id_when_linked(self, vendor, vendor_user):
        assert vendor.collector_identifier == str(vendor_user.id)

    def test_identifier_is_name_without_user(self, db):
        vendor = VendorFactory(vendor_name="Night Owl Press")

        assert vendor.collector_identifier == "Night Owl Press"

    def test_for_identifier_resolves_both_forms(self, vendor):
        named = VendorFactory()

        assert Vendor.for_identifier(vendor.collector_identifier) == vendor
        assert Vendor.for_identifier(named.collector_identifier) == named
        assert Vendor.for_identifier("nobody") is None

    def test_adjust_available_credits(self, vendor):
        Vendor.adjust_available_credits(vendor.id, 500)
        Vendor.adjust_available_credits(vendor.id, -200)

        vendor.refresh_from_db()
        assert vendor.available_credits == 300


class TestPayoutRequestStateMachine:
    def test_new_request_is_requested(self, db):
        payout_request = PayoutRequestFactory()

        assert payout_request.status == PayoutRequestStatus.REQUESTED
        assert payout_request.is_held is True
        assert payout_request.is_terminal is False

    def test_happy_path(self, db, operator):
        payout_request = PayoutRequestFactory()

        payout_request.start_processing(operator=operator)
        payout_request.save()
        payout_request.complete(processor_status="SUCCESS")
        payout_request.save()

        assert payout_request.status == PayoutRequestStatus.COMPLETED
        assert payout_request.processor_status == "SUCCESS"
        assert payout_request.is_terminal is True
        assert "Approved by" in payout_request.notes
        assert "Payout completed" in payout_request.notes

    def test_fail_from_processing(self, db, operator):
        payout_request = PayoutRequestFactory()
        payout_request.start_processing(operator=operator)
        payout_request.fail(reason="PayPal payout failed: timeout")

        assert payout_request.status == PayoutRequestStatus.FAILED
        assert payout_request.failed_at is not None

    def test_cannot_complete_requested(self, db):
        payout_request = PayoutRequestFactory()

        with pytest.raises(TransitionNotAllowed):
            payout_request.complete()

    def test_cannot_reject_processing(self, db, operator):
        payout_request = PayoutRequestFactory()
        payout_request.start_processing(operator=operator)

        with pytest.raises(TransitionNotAllowed):
            payout_request.reject(reason="too late")

    def test_terminal_states_are_final(self, db, operator):
        payout_request = PayoutRequestFactory()
        payout_request.reject(reason="fraud", operator=operator)

        with pytest.raises(TransitionNotAllowed):
            payout_request.start_processing(operator=operator)

    def test_status_cannot_be_assigned_directly(self, db):
        payout_request = PayoutRequestFactory()

        with pytest.raises(AttributeError):
            payout_request.status = PayoutRequestStatus.COMPLETED

    def test_save_increments_version(self, db, operator):
        payout_request = PayoutRequestFactory()
        assert payout_request.version == 1

        payout_request.start_processing(operator=operator)
        payout_request.save()

        assert payout_request.version == 2

    def test_amount_usd(self, db):
        assert PayoutRequestFactory(amount_cents=12345).amount_usd == Decimal("123.45")


class TestConstraints:
    def test_amount_must_be_positive(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            PayoutRequestFactory(amount_cents=0)

    def test_one_requested_row_per_vendor(self, vendor):
        PayoutRequestFactory(vendor=vendor)

        with pytest.raises(IntegrityError), transaction.atomic():
            PayoutRequestFactory(vendor=vendor)

    def test_other_statuses_do_not_count(self, vendor, operator):
        first = PayoutRequestFactory(vendor=vendor)
        first.reject(reason="", operator=operator)
        first.save()

        second = PayoutRequestFactory(vendor=vendor)

        assert second.status == PayoutRequestStatus.REQUESTED

    def test_line_item_audited_once(self, vendor, operator):
        item = FulfilledLineItemFactory(vendor=vendor)
        first = PayoutRequestFactory(vendor=vendor)
        PayoutItemAudit.objects.create(payout_request=first, line_item=item, payout_cents=2500)
        first.reject(reason="", operator=operator)
        first.save()
        second = PayoutRequestFactory(vendor=vendor)

        with pytest.raises(IntegrityError), transaction.atomic():
            PayoutItemAudit.objects.create(
                payout_request=second, line_item=item, payout_cents=2500
            )


class TestAppreciationRun:
    def test_finish_records_summary(self, db):
        run = AppreciationRunFactory(status=AppreciationRunStatus.RUNNING, finished_at=None)
        assert run.duration_seconds is None

        run.finish(
            AppreciationRunStatus.COMPLETED,
            {"processed": 4, "appreciated": 2, "bonus_total": 900, "errors": ["x"]},
        )

        run.refresh_from_db()
        assert run.status == AppreciationRunStatus.COMPLETED
        assert (run.processed, run.appreciated, run.bonus_total) == (4, 2, 900)
        assert run.errors == ["x"]
        assert run.duration_seconds >= 0
