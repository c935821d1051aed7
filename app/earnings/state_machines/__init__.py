"""
State machine enums for earnings models.

This module defines the state enums used by earnings models with django-fsm.
"""

from earnings.state_machines.states import (
    HELD_PAYOUT_STATUSES,
    TERMINAL_PAYOUT_STATUSES,
    AppreciationRunStatus,
    AppreciationTrigger,
    FulfillmentStatus,
    PayoutRequestStatus,
)

__all__ = [
    "HELD_PAYOUT_STATUSES",
    "TERMINAL_PAYOUT_STATUSES",
    "AppreciationRunStatus",
    "AppreciationTrigger",
    "FulfillmentStatus",
    "PayoutRequestStatus",
]
