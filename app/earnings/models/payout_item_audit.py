"""
Audit snapshot of line items visible when a payout was requested.

Informational only: payout amounts always come from the balance snapshot,
never from these rows. Deleting the rows of a rejected request frees the
items for a future request.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class PayoutItemAudit(UUIDPrimaryKeyMixin, BaseModel):
    """
    One line item claimed by a payout request.

    line_item is unique, so an item belongs to at most one live request.
    """

    payout_request = models.ForeignKey(
        "earnings.PayoutRequest",
        on_delete=models.CASCADE,
        related_name="audit_items",
    )
    line_item = models.OneToOneField(
        "earnings.FulfilledLineItem",
        on_delete=models.PROTECT,
        related_name="payout_audit",
    )
    payout_cents = models.PositiveBigIntegerField(
        help_text="Vendor share of the item at request time",
    )
    manually_marked_paid = models.BooleanField(
        default=False,
        help_text="Operator confirmed this item was paid outside the flow",
    )

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"Audit({self.payout_request_id}, {self.line_item_id})"
