"""
Ledger - Append-only record of vendor credits.

Every credit a vendor earns or spends is a signed LedgerEntry keyed by the
vendor's collector identifier. Balances are always derived by summing
entries; nothing else is the balance of record.

Public API:
    Models:
        LedgerEntry - Immutable signed entry
        TransactionType - deposit, withdrawal, appreciation
        EntrySource - subscription, purchase, payout, appreciation, refund, adjustment

    Service:
        ledger - Singleton instance of LedgerService
        LedgerService - Class with all ledger operations

    Types:
        Money - Amount in cents (1 credit == 1 cent)
        RecordEntryParams - Parameters for appending entries

    Exceptions:
        LedgerError - Base exception for ledger operations
        ImmutableEntryError - Attempt to edit or delete an entry
        DuplicateEntryError - Idempotency key reused for another entry

Usage:
    from earnings.ledger import ledger, EntrySource, RecordEntryParams, TransactionType

    entry = ledger.record_entry(RecordEntryParams(
        identifier=vendor.collector_identifier,
        vendor_id=vendor.id,
        transaction_type=TransactionType.DEPOSIT,
        credits_amount=100000,
        source=EntrySource.SUBSCRIPTION,
        idempotency_key="subscription:sub_123",
    ))

    ledger.balance_for(vendor.collector_identifier)  # 100000
"""

from .exceptions import DuplicateEntryError, ImmutableEntryError, LedgerError
from .models import EntrySource, LedgerEntry, TransactionType
from .services import LedgerService, ledger
from .types import Money, RecordEntryParams, credits_to_usd

__all__ = [
    # Models
    "LedgerEntry",
    "TransactionType",
    "EntrySource",
    # Service
    "ledger",
    "LedgerService",
    # Types
    "Money",
    "RecordEntryParams",
    "credits_to_usd",
    # Exceptions
    "LedgerError",
    "ImmutableEntryError",
    "DuplicateEntryError",
]
