"""
Earnings services for balances, redemptions, settlement and appreciation.

This module provides:
- BalanceCalculator: Ledger-derived vendor balances with an injected cache
- RedemptionService: Vendor payout requests
- SettlementService: Operator approve/reject against the payment processor
- AppreciationService: Periodic appreciation bonuses on subscription deposits
- EarningsService: Idempotent credits and refund deductions

Usage:
    from earnings.services import get_balance_calculator

    snapshot = get_balance_calculator().balance(vendor.collector_identifier)

    # Redeem the available balance
    from earnings.services import RedemptionService

    payout_request = RedemptionService.request_payout(vendor)

    # Approve it
    from earnings.services import SettlementService

    result = SettlementService.approve(payout_request.id, operator=admin_user)

    # Run the appreciation job
    from earnings.services import AppreciationService

    summary = AppreciationService.run_appreciation()
"""

from earnings.services.appreciation_service import (
    APPRECIATION_TIERS,
    AppreciationService,
    AppreciationTier,
    calculate_bonus,
    multiplier_of,
    schedule_definition,
)
from earnings.services.balance_calculator import (
    BalanceCalculator,
    BalanceSnapshot,
    get_balance_calculator,
)
from earnings.services.earnings_service import EarningsService, vendor_payout_cents
from earnings.services.redemption_service import (
    RedemptionService,
    generate_invoice_number,
    generate_reference,
    payout_minimum_cents,
)
from earnings.services.settlement_service import SettlementService

__all__ = [
    # Balance
    "BalanceCalculator",
    "BalanceSnapshot",
    "get_balance_calculator",
    # Redemption
    "RedemptionService",
    "generate_invoice_number",
    "generate_reference",
    "payout_minimum_cents",
    # Settlement
    "SettlementService",
    # Appreciation
    "APPRECIATION_TIERS",
    "AppreciationService",
    "AppreciationTier",
    "calculate_bonus",
    "multiplier_of",
    "schedule_definition",
    # Earnings
    "EarningsService",
    "vendor_payout_cents",
]
