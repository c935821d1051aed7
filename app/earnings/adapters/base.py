"""
Payout processor interface and shared data types.

Any object with create_payout() and get_payout_batch() can be injected into
SettlementService; PayPalAdapter is the production implementation and
tests pass mocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class CreatePayoutParams:
    """
    Parameters for a single-recipient payout.

    Attributes:
        destination: Receiver e-mail address
        amount_cents: Amount in cents (> 0)
        currency: ISO 4217 code
        note: Message shown to the receiver
        idempotency_key: Stable key (the payout request id) so a retried
            call never creates a second real-world payout
        sender_item_id: Our id for the item inside the batch
    """

    destination: str
    amount_cents: int
    currency: str
    note: str
    idempotency_key: str
    sender_item_id: str | None = None

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.destination:
            raise ValueError("destination is required")


@dataclass
class PayoutBatchResult:
    """
    Processor response for a payout batch.

    Attributes:
        batch_id: Processor batch id
        batch_status: Raw processor status (e.g. PENDING, SUCCESS, DENIED)
        raw_response: Full response body (for debugging)
    """

    batch_id: str
    batch_status: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PayoutProcessor(Protocol):
    """External payment processor used by settlement."""

    def create_payout(self, params: CreatePayoutParams) -> PayoutBatchResult:
        ...

    def get_payout_batch(self, batch_id: str) -> PayoutBatchResult:
        ...
