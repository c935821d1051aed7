"""
Fulfilled order line items sold by a vendor.

Line items are imported from the storefront. Fulfilling one credits the
vendor (see EarningsService.record_fulfillment); a payout request snapshots
the eligible ones into PayoutItemAudit for human review.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from earnings.state_machines import FulfillmentStatus


class FulfilledLineItemQuerySet(models.QuerySet):
    def eligible_for_audit(self, vendor) -> FulfilledLineItemQuerySet:
        """Fulfilled items of vendor not claimed by any payout audit."""
        return self.filter(
            vendor=vendor,
            fulfillment_status=FulfillmentStatus.FULFILLED,
            payout_audit__isnull=True,
        )


class FulfilledLineItem(UUIDPrimaryKeyMixin, BaseModel):
    """
    An order line item belonging to a vendor.

    Fields:
        line_item_id: Storefront line item id (unique)
        order_id / order_name: Storefront order
        product_id: Storefront product
        price_cents: Sale price
        payout_cents: Vendor share credited on fulfillment
        fulfillment_status: unfulfilled, fulfilled or restocked
        fulfilled_at: When the item shipped
    """

    vendor = models.ForeignKey(
        "earnings.Vendor",
        on_delete=models.PROTECT,
        related_name="line_items",
    )
    line_item_id = models.CharField(max_length=64, unique=True)
    order_id = models.CharField(max_length=64, db_index=True)
    order_name = models.CharField(max_length=64, blank=True, default="")
    product_id = models.CharField(max_length=64, blank=True, default="")
    price_cents = models.PositiveBigIntegerField()
    payout_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Vendor share credited when fulfilled",
    )
    fulfillment_status = models.CharField(
        max_length=20,
        choices=FulfillmentStatus.choices,
        default=FulfillmentStatus.UNFULFILLED,
        db_index=True,
    )
    fulfilled_at = models.DateTimeField(null=True, blank=True)

    objects = FulfilledLineItemQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["vendor", "fulfillment_status"], name="line_item_vendor_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_name or self.order_id} / {self.line_item_id}"
