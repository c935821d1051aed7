"""
Pytest fixtures for PayPal adapter tests.

Sections:
    - Settings Fixtures
    - Mock HTTP Fixtures
"""

import json

import pytest
import requests

from earnings.adapters import CreatePayoutParams, PayPalAdapter


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def paypal_settings(settings):
    settings.PAYPAL_API_BASE = "https://paypal.test"
    settings.PAYPAL_CLIENT_ID = "client-id"
    settings.PAYPAL_CLIENT_SECRET = "client-secret"
    settings.PAYPAL_API_TIMEOUT_SECONDS = 7
    PayPalAdapter.reset_token()
    yield settings
    PayPalAdapter.reset_token()


@pytest.fixture
def payout_params():
    return CreatePayoutParams(
        destination="vendor@example.com",
        amount_cents=12000,
        currency="USD",
        note="Payout PAY-2026-10-1A2B3C4D",
        idempotency_key="0b7a3c9e-payout",
    )


# =============================================================================
# Mock HTTP Fixtures
# =============================================================================


def make_response(status_code=200, body=None):
    """Build a requests.Response with a JSON body."""
    response = requests.Response()
    response.status_code = status_code
    if body is not None:
        response._content = json.dumps(body).encode()
    else:
        response._content = b""
    return response


@pytest.fixture
def token_response():
    return make_response(200, {"access_token": "A21AA-token", "expires_in": 32400})


@pytest.fixture
def batch_response():
    def _create(status="PENDING", batch_id="5UXD2E8A7EBQJ"):
        return make_response(
            201,
            {
                "batch_header": {
                    "payout_batch_id": batch_id,
                    "batch_status": status,
                    "sender_batch_header": {"sender_batch_id": "0b7a3c9e-payout"},
                }
            },
        )

    return _create


@pytest.fixture
def mock_request(mocker):
    """Patch requests.request as seen by the adapter."""
    return mocker.patch("earnings.adapters.paypal_adapter.requests.request")
