"""
PayoutRequest model for vendor redemption attempts.

A PayoutRequest is created when a vendor redeems their available balance
and is driven through settlement by an operator. The amount is a snapshot
of the balance at request time and is never recomputed.

Usage:
    from earnings.models import PayoutRequest
    from earnings.state_machines import PayoutRequestStatus

    # Operator approves
    request.start_processing(operator=admin_user)
    request.save()

    # Processor reported final success
    request.complete(processor_status="SUCCESS")
    request.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from earnings.ledger.types import credits_to_usd
from earnings.state_machines import (
    HELD_PAYOUT_STATUSES,
    TERMINAL_PAYOUT_STATUSES,
    PayoutRequestStatus,
)


class PayoutRequestQuerySet(models.QuerySet):
    def held(self) -> PayoutRequestQuerySet:
        """Requests whose amount is still held (requested or processing)."""
        return self.filter(status__in=HELD_PAYOUT_STATUSES)

    def held_cents(self) -> int:
        from django.db.models import Sum
        from django.db.models.functions import Coalesce

        return self.held().aggregate(
            total=Coalesce(Sum("amount_cents"), 0, output_field=models.BigIntegerField())
        )["total"]


class PayoutRequest(UUIDPrimaryKeyMixin, BaseModel):
    """
    One vendor redemption attempt.

    State Flow:
        REQUESTED -> PROCESSING -> COMPLETED
        REQUESTED -> PROCESSING -> FAILED
        REQUESTED -> REJECTED

    Fields:
        vendor: Vendor who requested the payout
        vendor_identifier: Ledger key at request time
        amount_cents: Balance snapshot at request time (never recomputed)
        currency: Always USD
        status: Current FSM status
        destination: PayPal e-mail the payout is sent to
        reference: Human-readable reference (PAY-YYYY-MM-XXXXXXXX)
        invoice_number: Invoice number (INV-YYYYMMDD-XXXXXX)
        notes: Append-only human-readable audit trail
        processor_batch_id: Processor batch id once submitted
        processor_status: Last batch status reported by the processor
        processed_by: Operator who approved or rejected
        rejected_reason: Operator's reason for a rejection
        version: Optimistic locking version

    Constraints:
        - amount_cents > 0
        - at most one REQUESTED row per vendor (partial unique constraint)
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    vendor = models.ForeignKey(
        "earnings.Vendor",
        on_delete=models.PROTECT,
        related_name="payout_requests",
        help_text="Vendor requesting the payout",
    )
    vendor_identifier = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Ledger key of the vendor when the request was created",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Payout amount in cents, snapshotted at request time",
    )
    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PayoutRequestStatus.REQUESTED,
        choices=PayoutRequestStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current status of the payout request (managed by FSM)",
    )

    # ==========================================================================
    # Identification
    # ==========================================================================

    destination = models.CharField(
        max_length=254,
        help_text="Payout address (PayPal e-mail)",
    )
    reference = models.CharField(max_length=32, unique=True)
    invoice_number = models.CharField(max_length=32, unique=True)
    notes = models.TextField(blank=True, default="")

    # ==========================================================================
    # Processor Integration
    # ==========================================================================

    processor_batch_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Processor payout batch id",
    )
    processor_status = models.CharField(
        max_length=32,
        blank=True,
        default="",
        help_text="Last batch status reported by the processor",
    )

    # ==========================================================================
    # Operator Decision
    # ==========================================================================

    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="processed_payout_requests",
    )
    rejected_reason = models.TextField(blank=True, default="")

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    processed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    objects = PayoutRequestQuerySet.as_manager()

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["vendor", "status"], name="payout_req_vendor_status_idx"),
            models.Index(fields=["status", "created_at"], name="payout_req_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="payout_request_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["vendor"],
                condition=Q(status=PayoutRequestStatus.REQUESTED),
                name="payout_request_one_requested_per_vendor",
            ),
        ]

    def __str__(self) -> str:
        return f"PayoutRequest({self.reference}, {self.status}, ${self.amount_usd})"

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment for optimistic locking.
        """
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    def append_note(self, note: str) -> None:
        """Append a timestamped line to the audit trail."""
        line = f"[{timezone.now():%Y-%m-%d %H:%M:%S}] {note}"
        self.notes = f"{self.notes}\n{line}" if self.notes else line

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PayoutRequestStatus.REQUESTED,
        target=PayoutRequestStatus.PROCESSING,
    )
    def start_processing(self, operator=None):
        """
        Approve the request and hand it to the processor.

        Transition: REQUESTED -> PROCESSING
        """
        self.processed_by = operator
        self.processed_at = timezone.now()
        self.append_note(f"Approved by {operator or 'system'}")

    @transition(
        field=status,
        source=PayoutRequestStatus.PROCESSING,
        target=PayoutRequestStatus.COMPLETED,
    )
    def complete(self, processor_status: str = ""):
        """
        Transition: PROCESSING -> COMPLETED

        Called when the processor reports final success.
        """
        self.completed_at = timezone.now()
        if processor_status:
            self.processor_status = processor_status
        self.append_note("Payout completed")

    @transition(
        field=status,
        source=PayoutRequestStatus.PROCESSING,
        target=PayoutRequestStatus.FAILED,
    )
    def fail(self, reason: str, processor_status: str = ""):
        """
        Transition: PROCESSING -> FAILED

        The withdrawal ledger entry is left in place; reconciling it is a
        manual operator task.
        """
        self.failed_at = timezone.now()
        if processor_status:
            self.processor_status = processor_status
        self.append_note(reason)

    @transition(
        field=status,
        source=PayoutRequestStatus.REQUESTED,
        target=PayoutRequestStatus.REJECTED,
    )
    def reject(self, reason: str = "", operator=None):
        """
        Transition: REQUESTED -> REJECTED

        Operator decision; no processor or ledger interaction.
        """
        self.rejected_at = timezone.now()
        self.processed_by = operator
        self.rejected_reason = reason
        self.append_note(f"Rejected by {operator or 'system'}: {reason or 'no reason given'}")

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def amount_usd(self):
        return credits_to_usd(self.amount_cents)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PAYOUT_STATUSES

    @property
    def is_held(self) -> bool:
        return self.status in HELD_PAYOUT_STATUSES
