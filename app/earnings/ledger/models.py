"""
Ledger models for vendor earnings.

The ledger is the single source of truth for vendor balances: an
append-only table of signed credit entries keyed by the vendor's collector
identifier. Nothing else in the system is trusted as the balance of record.

Usage:
    from earnings.ledger.models import EntrySource, LedgerEntry, TransactionType

    # Available balance for a vendor
    LedgerEntry.objects.for_identifier(vendor.collector_identifier).balance()
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce

from core.model_mixins import UUIDPrimaryKeyMixin

from earnings.ledger.exceptions import ImmutableEntryError


class TransactionType(models.TextChoices):
    """
    Kinds of ledger entries.

    Values:
        DEPOSIT: Earnings credited to the vendor (positive)
        WITHDRAWAL: Payout or refund deduction (negative)
        APPRECIATION: Time-based bonus on a held deposit (positive)
    """

    DEPOSIT = "deposit", "Deposit"
    WITHDRAWAL = "withdrawal", "Withdrawal"
    APPRECIATION = "appreciation", "Appreciation"


class EntrySource(models.TextChoices):
    """
    Where an entry originated.

    Only SUBSCRIPTION deposits are eligible for appreciation bonuses.
    """

    SUBSCRIPTION = "subscription", "Subscription"
    PURCHASE = "purchase", "Purchase"
    PAYOUT = "payout", "Payout"
    APPRECIATION = "appreciation", "Appreciation"
    REFUND = "refund", "Refund"
    ADJUSTMENT = "adjustment", "Adjustment"


# Fields that may change after insert. Everything else is frozen.
MUTABLE_FIELDS = frozenset({"last_appreciation_tier_months", "metadata"})


class LedgerEntryQuerySet(models.QuerySet):
    """QuerySet helpers for balance aggregation."""

    def for_identifier(self, identifier: str) -> LedgerEntryQuerySet:
        return self.filter(identifier=identifier)

    def balance(self) -> int:
        """Sum of credits_amount over the queryset (0 when empty)."""
        return self.aggregate(
            total=Coalesce(Sum("credits_amount"), 0, output_field=models.BigIntegerField())
        )["total"]

    def appreciable_deposits(self) -> LedgerEntryQuerySet:
        return self.filter(
            transaction_type=TransactionType.DEPOSIT,
            source=EntrySource.SUBSCRIPTION,
        )


class LedgerEntry(UUIDPrimaryKeyMixin, models.Model):
    """
    An immutable, signed accounting record attributed to a vendor.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        created_at: When the entry was appended
        identifier: Vendor/collector key (vendor's user id or vendor name)
        vendor: Vendor the identifier resolved to at append time
        transaction_type: deposit, withdrawal or appreciation
        credits_amount: Signed amount in credits (1 credit == 1 US cent)
        usd_amount: Signed USD value (credits_amount / 100)
        source: Origin of the entry (subscription, purchase, payout, ...)
        reference_type / reference_id: Originating entity
        idempotency_key: Optional unique key preventing duplicate appends
        last_appreciation_tier_months: Highest appreciation tier (in months)
            already credited for this deposit; NULL when never appreciated
        description: Human-readable description
        metadata: Free-form audit data
        created_by: Service or operator that appended this entry

    Constraints:
        - credits_amount is non-zero and its sign matches transaction_type
        - only deposits carry an appreciation marker
        - idempotency_key is unique when set

    Note:
        save() refuses to update frozen fields and delete() always raises.
        Corrections are made by appending new entries.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this entry was appended",
    )

    identifier = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Vendor/collector key this entry belongs to",
    )
    vendor = models.ForeignKey(
        "earnings.Vendor",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
        help_text="Vendor the identifier resolved to when the entry was appended",
    )

    transaction_type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        help_text="Kind of entry",
    )
    credits_amount = models.BigIntegerField(
        help_text="Signed amount in credits (1 credit = 1 US cent)",
    )
    usd_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Signed USD value of this entry",
    )
    source = models.CharField(
        max_length=20,
        choices=EntrySource.choices,
        help_text="Where this entry originated",
    )

    reference_type = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Type of related entity (e.g., 'payout_request', 'line_item')",
    )
    reference_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of the related entity",
    )
    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Unique key to prevent duplicate entries",
    )

    last_appreciation_tier_months = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Highest appreciation tier (months) already credited for this deposit",
    )

    description = models.TextField(
        null=True,
        blank=True,
        help_text="Human-readable description of this entry",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Free-form audit data",
    )
    created_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of service/user that created this entry",
    )

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "ledger entries"
        indexes = [
            models.Index(fields=["identifier", "created_at"], name="ledger_identifier_created_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="ledger_reference_idx"),
            models.Index(
                fields=["transaction_type", "source", "created_at"],
                name="ledger_type_source_created_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(credits_amount=0),
                name="ledger_entry_credits_non_zero",
            ),
            models.CheckConstraint(
                condition=(
                    Q(transaction_type=TransactionType.WITHDRAWAL, credits_amount__lt=0)
                    | (
                        ~Q(transaction_type=TransactionType.WITHDRAWAL)
                        & Q(credits_amount__gt=0)
                    )
                ),
                name="ledger_entry_sign_matches_type",
            ),
            models.CheckConstraint(
                condition=(
                    Q(last_appreciation_tier_months__isnull=True)
                    | Q(transaction_type=TransactionType.DEPOSIT)
                ),
                name="ledger_entry_marker_only_on_deposits",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_transaction_type_display()}: {self.credits_amount} credits ({self.identifier})"

    def save(self, *args, **kwargs):
        """Insert once; afterwards only MUTABLE_FIELDS may be written."""
        if not self._state.adding:
            update_fields = kwargs.get("update_fields")
            if update_fields is None or not set(update_fields) <= MUTABLE_FIELDS:
                raise ImmutableEntryError(
                    "Ledger entries are append-only",
                    details={"entry_id": str(self.pk)},
                )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableEntryError(
            "Ledger entries cannot be deleted",
            details={"entry_id": str(self.pk)},
        )
