"""
Pytest fixtures shared by every earnings test package.

Sections:
    - Infrastructure Fixtures: Redis, notifications, injected services
    - User and Vendor Fixtures
    - Payout Request Fixtures
    - API Client Fixtures

Usage:
    def test_approve(requested_payout, processor, operator):
        result = SettlementService.approve(requested_payout.id, operator=operator)
        assert result.success
"""

from types import SimpleNamespace

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import StaffUserFactory, UserFactory
from earnings.adapters import PayoutBatchResult
from earnings.services import (
    AppreciationService,
    EarningsService,
    RedemptionService,
    SettlementService,
)
from earnings.tests.factories import VendorFactory, credit_vendor


class FakeRedis:
    """
    In-memory stand-in for the redis client used by DistributedLock.

    Supports SET NX EX, TTL and the two ownership-checked Lua scripts.
    """

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.ttls[key] = ex
        return True

    def get(self, key):
        return self.store.get(key)

    def ttl(self, key):
        if key not in self.store:
            return -2
        return self.ttls.get(key) or -1

    def eval(self, script, numkeys, key, token, *args):
        if self.store.get(key) != token:
            return 0
        if '"del"' in script:
            del self.store[key]
            self.ttls.pop(key, None)
            return 1
        self.ttls[key] = int(args[0])
        return 1


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def fake_redis(mocker):
    """Route every DistributedLock to an in-memory redis."""
    redis = FakeRedis()
    mocker.patch("earnings.locks.get_redis_connection", return_value=redis)
    return redis


@pytest.fixture(autouse=True)
def earnings_settings(settings):
    settings.PAYOUT_MINIMUM_CENTS = 5000
    settings.PAYOUT_CURRENCY = "USD"
    settings.VENDOR_PAYOUT_PERCENT = 25
    settings.BALANCE_CACHE_BACKEND = "shared"
    settings.BALANCE_CACHE_TTL_SECONDS = 300
    settings.APPRECIATION_JOB_SECRET = "cron-secret-for-tests"
    settings.APPRECIATION_LOCK_TTL_SECONDS = 900
    return settings


@pytest.fixture(autouse=True)
def notify(mocker):
    """Capture settlement notifications instead of enqueueing e-mails."""
    return SimpleNamespace(
        processed=mocker.patch("earnings.services.settlement_service.notify_payout_processed"),
        failed=mocker.patch("earnings.services.settlement_service.notify_payout_failed"),
    )


@pytest.fixture(autouse=True)
def reset_injected_services():
    """Drop adapters and calculators injected by a test."""
    yield
    SettlementService.set_processor_adapter(None)
    for service in (SettlementService, RedemptionService, AppreciationService, EarningsService):
        service.set_balance_calculator(None)


@pytest.fixture
def processor(mocker):
    """
    Mock payout processor injected into SettlementService.

    create_payout answers PENDING by default; set
    processor.create_payout.return_value or side_effect to change it.
    """
    adapter = mocker.MagicMock()
    adapter.create_payout.return_value = PayoutBatchResult(
        batch_id="BATCH-PENDING-1", batch_status="PENDING"
    )
    adapter.get_payout_batch.return_value = PayoutBatchResult(
        batch_id="BATCH-PENDING-1", batch_status="PENDING"
    )
    SettlementService.set_processor_adapter(adapter)
    return adapter


# =============================================================================
# User and Vendor Fixtures
# =============================================================================


@pytest.fixture
def vendor_user(db):
    return UserFactory()


@pytest.fixture
def operator(db):
    """Staff user allowed to settle payouts."""
    return StaffUserFactory()


@pytest.fixture
def vendor(db, vendor_user):
    """Active vendor with a login and a valid PayPal e-mail."""
    return VendorFactory(user=vendor_user)


@pytest.fixture
def funded_vendor(vendor):
    """Vendor with 120.00 USD available."""
    credit_vendor(vendor, 12000)
    return vendor


# =============================================================================
# Payout Request Fixtures
# =============================================================================


@pytest.fixture
def requested_payout(funded_vendor):
    """A 120.00 USD request in 'requested' with its withdrawal recorded."""
    return RedemptionService.request_payout(funded_vendor)


@pytest.fixture
def processing_payout(requested_payout, operator):
    """The requested payout approved and awaiting the processor."""
    requested_payout.start_processing(operator=operator)
    requested_payout.save()
    return requested_payout


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def vendor_client(vendor_user, vendor):
    client = APIClient()
    client.force_authenticate(user=vendor_user)
    return client


@pytest.fixture
def operator_client(operator):
    client = APIClient()
    client.force_authenticate(user=operator)
    return client
