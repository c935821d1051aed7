"""
Payout destination validation.

A destination is the vendor's PayPal e-mail. It is checked when the vendor
requests a payout and again when an operator approves it.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import EmailValidator

from earnings.exceptions import PayoutDestinationError

MAX_DESTINATION_LENGTH = 254

_email_validator = EmailValidator()


def validate_destination(destination: str | None) -> str:
    """
    Return the normalized destination or raise PayoutDestinationError.

    Normalization strips whitespace; case is preserved.
    """
    value = (destination or "").strip()
    if not value:
        raise PayoutDestinationError(
            "No payout destination on file. Add a PayPal e-mail before requesting a payout."
        )
    if len(value) > MAX_DESTINATION_LENGTH:
        raise PayoutDestinationError(
            "Payout destination is too long",
            details={"max_length": MAX_DESTINATION_LENGTH},
        )
    try:
        _email_validator(value)
    except DjangoValidationError as e:
        raise PayoutDestinationError(
            "Payout destination is not a valid e-mail address",
            details={"destination": value},
        ) from e
    return value
