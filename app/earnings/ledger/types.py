"""
Data types for ledger operations.

Types:
    Money: A USD amount held as integer cents (1 credit == 1 cent)
    RecordEntryParams: Parameters for appending a ledger entry

Usage:
    from earnings.ledger.types import Money, RecordEntryParams

    amount = Money(cents=12000)
    print(amount)          # "$120.00 USD"
    print(amount.dollars)  # Decimal("120.00")

    params = RecordEntryParams(
        identifier=vendor.collector_identifier,
        transaction_type=TransactionType.WITHDRAWAL,
        credits_amount=-12000,
        source=EntrySource.PAYOUT,
        reference_type="payout_request",
        reference_id=str(payout_request.id),
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

CENTS_PER_DOLLAR = Decimal(100)


def credits_to_usd(credits: int) -> Decimal:
    """Convert integer credits (cents) to a two-place USD Decimal."""
    return (Decimal(credits) / CENTS_PER_DOLLAR).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class Money:
    """
    Represents a monetary amount in cents.

    Attributes:
        cents: Amount in the smallest currency unit (may be negative)
        currency: ISO 4217 currency code (default: 'usd')
    """

    cents: int
    currency: str = "usd"

    @property
    def dollars(self) -> Decimal:
        return credits_to_usd(self.cents)

    def __str__(self) -> str:
        return f"${self.dollars} {self.currency.upper()}"

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot add Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(cents=self.cents + other.cents, currency=self.currency)


@dataclass
class RecordEntryParams:
    """
    Parameters for appending one ledger entry.

    Sign convention: deposits and appreciation bonuses are positive,
    withdrawals (payouts and refund deductions) are negative.

    Required Attributes:
        identifier: Vendor/collector key the entry belongs to
        transaction_type: deposit, withdrawal or appreciation
        credits_amount: Signed amount in credits (cents)
        source: subscription, purchase, payout, appreciation, refund, adjustment

    Optional Attributes:
        vendor_id: Vendor row the identifier resolves to
        idempotency_key: Unique key; a repeat append returns the existing entry
        reference_type / reference_id: Originating entity
        description: Human-readable description
        metadata: Free-form audit data (never read for control flow)
        created_by: Service or operator that appended the entry
    """

    identifier: str
    transaction_type: str
    credits_amount: int
    source: str

    vendor_id: uuid.UUID | None = None
    idempotency_key: str | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_by: str | None = None

    def __post_init__(self) -> None:
        """Validate params after initialization."""
        from earnings.ledger.models import TransactionType

        if not self.identifier:
            raise ValueError("identifier is required")
        if self.credits_amount == 0:
            raise ValueError("credits_amount must be non-zero")
        if self.transaction_type == TransactionType.WITHDRAWAL:
            if self.credits_amount > 0:
                raise ValueError("withdrawal entries must be negative")
        elif self.credits_amount < 0:
            raise ValueError(f"{self.transaction_type} entries must be positive")

    @property
    def usd_amount(self) -> Decimal:
        return credits_to_usd(self.credits_amount)
