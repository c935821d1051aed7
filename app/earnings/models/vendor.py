"""
Vendor model.

A Vendor is a seller whose earnings are tracked in the ledger. Its
collector_identifier is the key every ledger entry is filed under.

Usage:
    from earnings.models import Vendor

    vendor = Vendor.objects.create(
        user=user,
        vendor_name="Acme Records",
        paypal_email="payouts@acme.example",
    )
    vendor.collector_identifier  # str(user.id)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class Vendor(UUIDPrimaryKeyMixin, BaseModel):
    """
    A selling vendor.

    Fields:
        user: Optional login for the vendor portal
        vendor_name: Unique display name (also the ledger key without a user)
        paypal_email: Payout destination
        is_active: Inactive vendors cannot request payouts
        available_credits: Fast-read balance counter; informational only,
            the ledger sum is authoritative
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="vendor_profile",
        help_text="Login linked to this vendor",
    )
    vendor_name = models.CharField(
        max_length=255,
        unique=True,
        help_text="Vendor display name",
    )
    paypal_email = models.CharField(
        max_length=254,
        blank=True,
        default="",
        help_text="PayPal e-mail that receives payouts",
    )
    is_active = models.BooleanField(default=True)
    available_credits = models.BigIntegerField(
        default=0,
        help_text="Cached credit counter; the ledger is the balance of record",
    )

    class Meta:
        ordering = ["vendor_name"]

    def __str__(self) -> str:
        return self.vendor_name

    @property
    def collector_identifier(self) -> str:
        """Ledger key: the linked user's id, else the vendor name."""
        if self.user_id is not None:
            return str(self.user_id)
        return self.vendor_name

    @classmethod
    def adjust_available_credits(cls, vendor_id, delta: int) -> int:
        """Atomically add delta to the counter. Returns rows updated."""
        return cls.objects.filter(id=vendor_id).update(
            available_credits=models.F("available_credits") + delta
        )

    @classmethod
    def for_identifier(cls, identifier: str) -> Vendor | None:
        """Resolve a collector identifier back to its vendor."""
        if identifier.isdigit():
            vendor = cls.objects.filter(user_id=int(identifier)).first()
            if vendor is not None:
                return vendor
        return cls.objects.filter(vendor_name=identifier).first()
