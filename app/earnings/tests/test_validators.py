"""
Tests for payout destination validation.
"""

import pytest

from earnings.exceptions import PayoutDestinationError
from earnings.validators import MAX_DESTINATION_LENGTH, validate_destination


class TestValidateDestination:
    def test_returns_stripped_address(self):
        assert validate_destination("  Vendor@Example.com ") == "Vendor@Example.com"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_destination(self, value):
        with pytest.raises(PayoutDestinationError, match="No payout destination"):
            validate_destination(value)

    @pytest.mark.parametrize("value", ["vendor", "vendor@", "@example.com", "a b@example.com"])
    def test_malformed_destination(self, value):
        with pytest.raises(PayoutDestinationError) as exc_info:
            validate_destination(value)

        assert exc_info.value.error_code == "invalid_destination"
        assert exc_info.value.http_status == 400

    def test_overlong_destination(self):
        value = "a" * MAX_DESTINATION_LENGTH + "@example.com"

        with pytest.raises(PayoutDestinationError, match="too long"):
            validate_destination(value)
