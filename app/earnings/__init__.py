"""
Earnings app for vendor balances and payouts.

This app handles:
- The vendor credit ledger (earnings.ledger)
- Balance snapshots for vendors
- Payout redemption requests
- Operator settlement through PayPal Payouts
- Periodic appreciation bonuses on subscription deposits

Related apps:
    - authentication: User model linked to vendors and operators

Usage:
    from earnings.services import RedemptionService, SettlementService

    payout_request = RedemptionService.request_payout(vendor)
    result = SettlementService.approve(payout_request.id, operator=admin_user)
"""
