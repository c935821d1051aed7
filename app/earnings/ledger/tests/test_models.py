"""
Tests for ledger models.

Covers the LedgerEntry constraints, append-only behavior and the
queryset helpers used for balance aggregation.
"""

import uuid
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from earnings.ledger.exceptions import ImmutableEntryError
from earnings.ledger.models import EntrySource, LedgerEntry, TransactionType
from earnings.ledger.tests.factories import (
    LedgerEntryFactory,
    SubscriptionDepositFactory,
    WithdrawalEntryFactory,
)


class TestLedgerEntry:
    """Tests for LedgerEntry fields and constraints."""

    def test_entry_created_with_uuid_primary_key(self, db):
        entry = LedgerEntryFactory()

        assert isinstance(entry.id, uuid.UUID)

    def test_str_representation(self, db):
        entry = LedgerEntryFactory(identifier="42", credits_amount=2500)

        assert str(entry) == "Deposit: 2500 credits (42)"

    def test_usd_amount_mirrors_credits(self, db):
        entry = LedgerEntryFactory(credits_amount=12345)

        entry.refresh_from_db()
        assert entry.usd_amount == Decimal("123.45")

    def test_idempotency_key_unique(self, db):
        LedgerEntryFactory(idempotency_key="payout_earned:li_1")

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntryFactory(idempotency_key="payout_earned:li_1")

    def test_null_idempotency_keys_do_not_collide(self, db):
        LedgerEntryFactory(idempotency_key=None)
        LedgerEntryFactory(idempotency_key=None)

        assert LedgerEntry.objects.filter(idempotency_key__isnull=True).count() == 2

    def test_zero_amount_rejected(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntryFactory(credits_amount=0)

    def test_positive_withdrawal_rejected(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            WithdrawalEntryFactory(credits_amount=500)

    def test_negative_deposit_rejected(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntryFactory(credits_amount=-500)

    def test_appreciation_marker_only_on_deposits(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntryFactory(
                transaction_type=TransactionType.APPRECIATION,
                source=EntrySource.APPRECIATION,
                last_appreciation_tier_months=3,
            )

    def test_ordering_newest_first(self, db, identifier):
        older = LedgerEntryFactory(identifier=identifier)
        newer = LedgerEntryFactory(identifier=identifier)

        entries = list(LedgerEntry.objects.for_identifier(identifier))

        assert entries[0].created_at >= entries[1].created_at
        assert {e.id for e in entries} == {older.id, newer.id}


class TestLedgerEntryImmutability:
    """Entries are append-only."""

    def test_full_save_on_existing_entry_raises(self, deposit):
        deposit.credits_amount = 1

        with pytest.raises(ImmutableEntryError):
            deposit.save()

    def test_save_with_frozen_update_fields_raises(self, deposit):
        deposit.credits_amount = 1

        with pytest.raises(ImmutableEntryError):
            deposit.save(update_fields=["credits_amount"])

    def test_metadata_may_be_updated(self, deposit):
        deposit.metadata = {"note": "reviewed"}
        deposit.save(update_fields=["metadata"])

        deposit.refresh_from_db()
        assert deposit.metadata == {"note": "reviewed"}

    def test_delete_raises(self, deposit):
        with pytest.raises(ImmutableEntryError):
            deposit.delete()

        assert LedgerEntry.objects.filter(id=deposit.id).exists()


class TestLedgerEntryQuerySet:
    """Tests for balance aggregation helpers."""

    def test_balance_empty_identifier_is_zero(self, db):
        assert LedgerEntry.objects.for_identifier("nobody").balance() == 0

    def test_balance_sums_signed_amounts(self, withdrawal, identifier):
        # deposit 12000, withdrawal -5000
        assert LedgerEntry.objects.for_identifier(identifier).balance() == 7000

    def test_balance_ignores_other_identifiers(self, deposit, identifier):
        LedgerEntryFactory(identifier="someone-else", credits_amount=99999)

        assert LedgerEntry.objects.for_identifier(identifier).balance() == 12000

    def test_appreciable_deposits_only_subscription(self, db, identifier):
        sub = SubscriptionDepositFactory(identifier=identifier)
        LedgerEntryFactory(identifier=identifier, source=EntrySource.PURCHASE)
        WithdrawalEntryFactory(identifier=identifier)

        assert list(LedgerEntry.objects.appreciable_deposits()) == [sub]
