"""
Ledger service layer for vendor earnings.

This module provides the LedgerService class which encapsulates every
write to the earnings ledger. All ledger appends should go through this
service to ensure sign validation, idempotency and a consistent audit trail.

Usage:
    from earnings.ledger.services import LedgerService, ledger
    from earnings.ledger.types import RecordEntryParams

    # Available credits for a vendor
    credits = ledger.balance_for(vendor.collector_identifier)

    # Recording an entry
    entry = ledger.record_entry(RecordEntryParams(
        identifier=vendor.collector_identifier,
        transaction_type=TransactionType.DEPOSIT,
        credits_amount=2500,
        source=EntrySource.PURCHASE,
        idempotency_key="payout_earned:li_123",
    ))
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction

from .exceptions import DuplicateEntryError
from .models import LedgerEntry, TransactionType
from .types import Money, RecordEntryParams

if TYPE_CHECKING:
    from django.db.models import QuerySet


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - Append-only writes (entries are never edited or deleted)
    - Idempotency via unique keys (safe to retry)
    - Atomic multi-entry appends
    - Compare-and-set update of the appreciation marker

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def record_entry(params: RecordEntryParams) -> LedgerEntry:
        """
        Append a single ledger entry.

        Idempotent - safe to call multiple times with the same idempotency_key.
        If an entry with the same key already exists, returns that entry.

        Args:
            params: Entry parameters including identifier, amount and key

        Returns:
            The created or existing LedgerEntry

        Raises:
            DuplicateEntryError: If the key belongs to a different entry
        """
        return LedgerService.record_entries([params])[0]

    @staticmethod
    def record_entries(entries: list[RecordEntryParams]) -> list[LedgerEntry]:
        """
        Append multiple ledger entries atomically.

        All entries succeed or all fail. Entries whose idempotency_key
        already exists are returned without modification.

        Args:
            entries: List of entry parameters

        Returns:
            List of created or existing LedgerEntry objects, in input order
        """
        if not entries:
            return []

        results: list[LedgerEntry] = []

        with transaction.atomic():
            for params in entries:
                # Check idempotency first so a replay never appends twice
                if params.idempotency_key:
                    existing = LedgerEntry.objects.filter(
                        idempotency_key=params.idempotency_key
                    ).first()
                    if existing is not None:
                        results.append(LedgerService._check_replay(existing, params))
                        continue

                try:
                    # Savepoint so a lost idempotency race does not poison
                    # the surrounding transaction
                    with transaction.atomic():
                        entry = LedgerService._create(params)
                except IntegrityError:
                    if not params.idempotency_key:
                        raise
                    # Another process created it between our check and create
                    existing = LedgerEntry.objects.get(
                        idempotency_key=params.idempotency_key
                    )
                    entry = LedgerService._check_replay(existing, params)

                results.append(entry)

        return results

    @staticmethod
    def _create(params: RecordEntryParams) -> LedgerEntry:
        return LedgerEntry.objects.create(
            identifier=params.identifier,
            vendor_id=params.vendor_id,
            transaction_type=params.transaction_type,
            credits_amount=params.credits_amount,
            usd_amount=params.usd_amount,
            source=params.source,
            idempotency_key=params.idempotency_key,
            reference_type=params.reference_type,
            reference_id=params.reference_id,
            description=params.description,
            metadata=params.metadata or {},
            created_by=params.created_by,
        )

    @staticmethod
    def _check_replay(existing: LedgerEntry, params: RecordEntryParams) -> LedgerEntry:
        """Return the existing entry if it matches params, else raise."""
        if (
            existing.identifier != params.identifier
            or existing.credits_amount != params.credits_amount
            or existing.transaction_type != params.transaction_type
        ):
            raise DuplicateEntryError(params.idempotency_key, existing.id)
        return existing

    @staticmethod
    def balance_for(identifier: str) -> int:
        """
        Raw ledger sum for an identifier, in credits.

        Not floored: callers that present a spendable balance apply
        max(0, ...) themselves.
        """
        return LedgerEntry.objects.for_identifier(identifier).balance()

    @staticmethod
    def get_balance(identifier: str) -> Money:
        """Ledger sum for an identifier as Money (cents == credits)."""
        return Money(cents=LedgerService.balance_for(identifier))

    @staticmethod
    def history(identifier: str, limit: int = 50, offset: int = 0) -> list[LedgerEntry]:
        """
        Entries for an identifier, newest first.

        Args:
            identifier: Vendor/collector key
            limit: Maximum number of entries to return (default: 50)
            offset: Number of entries to skip (default: 0)
        """
        return list(
            LedgerEntry.objects.for_identifier(identifier)
            .order_by("-created_at")[offset : offset + limit]
        )

    @staticmethod
    def get_entries_by_reference(reference_type: str, reference_id: str) -> list[LedgerEntry]:
        """All entries for a given originating entity, oldest first."""
        return list(
            LedgerEntry.objects.filter(
                reference_type=reference_type,
                reference_id=str(reference_id),
            ).order_by("created_at")
        )

    @staticmethod
    def appreciation_candidates(tier_months: int, cutoff) -> QuerySet[LedgerEntry]:
        """
        Subscription deposits created on or before cutoff that have not yet
        been credited at tier_months.
        """
        from django.db.models import Q

        return (
            LedgerEntry.objects.appreciable_deposits()
            .filter(created_at__lte=cutoff)
            .filter(
                Q(last_appreciation_tier_months__isnull=True)
                | Q(last_appreciation_tier_months__lt=tier_months)
            )
            .order_by("created_at")
        )

    @staticmethod
    def mark_appreciation_tier(
        entry_id: uuid.UUID,
        previous_tier_months: int | None,
        tier_months: int,
    ) -> bool:
        """
        Advance a deposit's appreciation marker with compare-and-set.

        The UPDATE only matches while the marker still holds
        previous_tier_months, so two writers racing on the same entry
        cannot both advance it.

        Returns:
            True if this call advanced the marker, False if it lost the race
        """
        queryset = LedgerEntry.objects.filter(
            id=entry_id,
            transaction_type=TransactionType.DEPOSIT,
        )
        if previous_tier_months is None:
            queryset = queryset.filter(last_appreciation_tier_months__isnull=True)
        else:
            queryset = queryset.filter(last_appreciation_tier_months=previous_tier_months)
        return queryset.update(last_appreciation_tier_months=tier_months) == 1


# Singleton instance for convenience
# Usage: from earnings.ledger.services import ledger
ledger = LedgerService()
