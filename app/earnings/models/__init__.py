"""
Earnings domain models.

This module contains all earnings-related models:
- Vendor: Selling vendor and its ledger key
- FulfilledLineItem: Order line items sold by a vendor
- PayoutRequest: Vendor redemption attempts driven through settlement
- PayoutItemAudit: Line items visible when a payout was requested
- AppreciationRun: Appreciation scheduler invocations
- LedgerEntry: Append-only vendor credit ledger (earnings.ledger)
"""

from earnings.ledger.models import LedgerEntry
from earnings.models.appreciation_run import AppreciationRun
from earnings.models.line_item import FulfilledLineItem
from earnings.models.payout_item_audit import PayoutItemAudit
from earnings.models.payout_request import PayoutRequest
from earnings.models.vendor import Vendor

__all__ = [
    "AppreciationRun",
    "FulfilledLineItem",
    "LedgerEntry",
    "PayoutItemAudit",
    "PayoutRequest",
    "Vendor",
]
