"""
Payment processor adapters.

All external payout calls go through these adapters to ensure consistent
timeouts, idempotency, error translation and observability.

Usage:
    from earnings.adapters import CreatePayoutParams, PayPalAdapter

    result = PayPalAdapter.create_payout(CreatePayoutParams(...))
"""

from earnings.adapters.base import CreatePayoutParams, PayoutBatchResult, PayoutProcessor
from earnings.adapters.paypal_adapter import PayPalAdapter, map_batch_status

__all__ = [
    "CreatePayoutParams",
    "PayPalAdapter",
    "PayoutBatchResult",
    "PayoutProcessor",
    "map_batch_status",
]
