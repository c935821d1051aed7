"""
Factory Boy factories for earnings models.

Usage:
    from earnings.tests.factories import VendorFactory, FulfilledLineItemFactory

    vendor = VendorFactory(user=user)
    item = FulfilledLineItemFactory(vendor=vendor, price_cents=10000)

PayoutRequestFactory always creates 'requested' rows; move them through
the FSM transitions to reach other statuses.
"""

import factory
from django.utils import timezone

from earnings.models import (
    AppreciationRun,
    FulfilledLineItem,
    PayoutRequest,
    Vendor,
)
from earnings.state_machines import AppreciationRunStatus, FulfillmentStatus


class VendorFactory(factory.django.DjangoModelFactory):
    """
    Factory for Vendor model.

    Examples:
        vendor = VendorFactory()                 # no login, keyed by name
        vendor = VendorFactory(user=user)        # keyed by str(user.id)
        vendor = VendorFactory(paypal_email="")  # cannot redeem
    """

    class Meta:
        model = Vendor

    user = None
    vendor_name = factory.Sequence(lambda n: f"Vendor {n}")
    paypal_email = factory.Sequence(lambda n: f"payouts{n}@vendor.example")
    is_active = True


class FulfilledLineItemFactory(factory.django.DjangoModelFactory):
    """Fulfilled line item whose payout_cents is already the 25% share."""

    class Meta:
        model = FulfilledLineItem

    vendor = factory.SubFactory(VendorFactory)
    line_item_id = factory.Sequence(lambda n: f"li_{n:06d}")
    order_id = factory.Sequence(lambda n: f"order_{n:06d}")
    order_name = factory.Sequence(lambda n: f"#{1000 + n}")
    product_id = factory.Sequence(lambda n: f"prod_{n}")
    price_cents = 10000
    payout_cents = factory.LazyAttribute(lambda o: o.price_cents // 4)
    fulfillment_status = FulfillmentStatus.FULFILLED
    fulfilled_at = factory.LazyFunction(timezone.now)


class PayoutRequestFactory(factory.django.DjangoModelFactory):
    """Payout request in 'requested' status (no ledger withdrawal)."""

    class Meta:
        model = PayoutRequest

    vendor = factory.SubFactory(VendorFactory)
    vendor_identifier = factory.LazyAttribute(lambda o: o.vendor.collector_identifier)
    amount_cents = 10000
    currency = "USD"
    destination = factory.LazyAttribute(lambda o: o.vendor.paypal_email)
    reference = factory.Sequence(lambda n: f"PAY-2026-10-{n:08X}")
    invoice_number = factory.Sequence(lambda n: f"INV-20261019-{n:06X}")


class AppreciationRunFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = AppreciationRun

    status = AppreciationRunStatus.COMPLETED
    finished_at = factory.LazyFunction(timezone.now)


def credit_vendor(vendor, credits, **kwargs):
    """Append a purchase deposit for vendor and bump its counter."""
    from earnings.ledger.tests.factories import LedgerEntryFactory

    entry = LedgerEntryFactory(
        identifier=vendor.collector_identifier,
        vendor=vendor,
        credits_amount=credits,
        **kwargs,
    )
    Vendor.adjust_available_credits(vendor.id, credits)
    return entry
