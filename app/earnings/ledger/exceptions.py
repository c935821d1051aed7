"""
Ledger-specific exceptions.

Exception Hierarchy:
    LedgerError (base)
    ├── ImmutableEntryError - Attempt to edit or delete an appended entry
    └── DuplicateEntryError - Idempotency key reused for a different entry

Usage:
    from earnings.ledger.exceptions import LedgerError
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


class LedgerError(BaseApplicationError):
    """
    Base exception for all ledger operations.

    Example:
        try:
            ledger.record_entry(params)
        except LedgerError as e:
            logger.error("Ledger append failed", extra={"error": str(e)})
    """

    default_error_code: str = "ledger_error"


class ImmutableEntryError(LedgerError):
    """
    Raised when code tries to modify or delete a ledger entry.

    Entries are append-only. Corrections are new entries; only the
    appreciation marker and the metadata bag may be updated in place.
    """

    default_error_code: str = "ledger_entry_immutable"


class DuplicateEntryError(LedgerError):
    """
    Raised when an idempotency key is reused for a different entry.

    A repeat append with identical parameters returns the existing entry;
    reusing the key for another identifier or amount is a caller bug.
    """

    default_error_code: str = "ledger_duplicate_entry"

    def __init__(self, idempotency_key: str, existing_entry_id):
        self.idempotency_key = idempotency_key
        self.existing_entry_id = existing_entry_id
        super().__init__(
            f"Idempotency key {idempotency_key!r} already used by a different entry",
            details={
                "idempotency_key": idempotency_key,
                "existing_entry_id": str(existing_entry_id),
            },
        )
