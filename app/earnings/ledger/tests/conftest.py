"""
Pytest fixtures for ledger tests.

Sections:
    - Identifier Fixtures: Collector keys
    - Entry Fixtures: Pre-configured ledger entries
"""

import pytest

from earnings.ledger.tests.factories import (
    LedgerEntryFactory,
    SubscriptionDepositFactory,
    WithdrawalEntryFactory,
)


# ==========================================================================
# Identifier Fixtures
# ==========================================================================


@pytest.fixture
def identifier():
    """Collector identifier with no entries yet."""
    return "collector-under-test"


# ==========================================================================
# Entry Fixtures
# ==========================================================================


@pytest.fixture
def deposit(db, identifier):
    """A 120.00 USD purchase deposit."""
    return LedgerEntryFactory(identifier=identifier, credits_amount=12000)


@pytest.fixture
def subscription_deposit(db, identifier):
    """A 1,000 credit subscription deposit (appreciation eligible)."""
    return SubscriptionDepositFactory(identifier=identifier, credits_amount=1000)


@pytest.fixture
def withdrawal(db, identifier, deposit):
    """A 50.00 USD payout withdrawal against the deposit."""
    return WithdrawalEntryFactory(identifier=identifier, credits_amount=-5000)
