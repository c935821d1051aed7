"""
Serializers for the earnings API.

Serializers:
    BalanceSerializer: Balance snapshot (credits and USD)
    LedgerEntrySerializer: Read-only ledger history row
    PayoutRequestSerializer: Vendor view of a payout request
    AdminPayoutRequestSerializer: Settlement queue row with audit items
    PayoutActionSerializer: Admin approve/reject body
    AppreciationRunSerializer: Scheduler run statistics

Usage:
    from earnings.serializers import PayoutRequestSerializer

    serializer = PayoutRequestSerializer(payout_request)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from earnings.ledger.models import LedgerEntry
from earnings.models import AppreciationRun, PayoutItemAudit, PayoutRequest


class UsdBalanceSerializer(serializers.Serializer):
    available = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending = serializers.DecimalField(max_digits=14, decimal_places=2)
    held = serializers.DecimalField(max_digits=14, decimal_places=2)
    total = serializers.DecimalField(max_digits=14, decimal_places=2)


class BalanceSerializer(serializers.Serializer):
    """
    Response serializer for the balance endpoint.

    Credit fields are integers (1 credit == 1 cent); usd repeats them as
    two-place decimal strings.
    """

    identifier = serializers.CharField()
    available = serializers.IntegerField()
    pending = serializers.IntegerField()
    held = serializers.IntegerField()
    total = serializers.IntegerField()
    as_of = serializers.DateTimeField()
    degraded = serializers.BooleanField()
    usd = UsdBalanceSerializer()


class LedgerEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "transaction_type",
            "source",
            "credits_amount",
            "usd_amount",
            "reference_type",
            "reference_id",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class BalanceResponseSerializer(serializers.Serializer):
    balance = BalanceSerializer()
    history = LedgerEntrySerializer(many=True)


class PayoutRequestSerializer(serializers.ModelSerializer):
    """
    Vendor-facing payout request.

    amount is USD; amount_cents is the credit amount it was snapshotted at.
    """

    amount = serializers.DecimalField(
        source="amount_usd", max_digits=14, decimal_places=2, read_only=True
    )

    class Meta:
        model = PayoutRequest
        fields = [
            "id",
            "amount",
            "amount_cents",
            "currency",
            "status",
            "destination",
            "reference",
            "invoice_number",
            "processed_at",
            "completed_at",
            "failed_at",
            "rejected_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PayoutItemAuditSerializer(serializers.ModelSerializer):
    line_item_id = serializers.CharField(source="line_item.line_item_id", read_only=True)
    order_name = serializers.CharField(source="line_item.order_name", read_only=True)

    class Meta:
        model = PayoutItemAudit
        fields = ["line_item_id", "order_name", "payout_cents", "manually_marked_paid"]
        read_only_fields = fields


class AdminPayoutRequestSerializer(PayoutRequestSerializer):
    """Settlement queue row: vendor, audit trail and processor fields."""

    vendor_name = serializers.CharField(source="vendor.vendor_name", read_only=True)
    processed_by = serializers.SerializerMethodField()
    audit_items = PayoutItemAuditSerializer(many=True, read_only=True)

    class Meta(PayoutRequestSerializer.Meta):
        fields = PayoutRequestSerializer.Meta.fields + [
            "vendor_name",
            "vendor_identifier",
            "notes",
            "processor_batch_id",
            "processor_status",
            "processed_by",
            "rejected_reason",
            "version",
            "audit_items",
        ]
        read_only_fields = fields

    def get_processed_by(self, obj: PayoutRequest) -> str | None:
        if obj.processed_by is None:
            return None
        return obj.processed_by.email


class RedemptionResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    payoutId = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    reference = serializers.CharField()
    status = serializers.CharField()


class PayoutActionSerializer(serializers.Serializer):
    """
    Admin settlement action.

    reason is stored on rejection and ignored on approval. version, when
    sent, must match the request's current version.
    """

    payoutId = serializers.UUIDField()
    action = serializers.ChoiceField(choices=["approve", "reject"])
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    version = serializers.IntegerField(required=False, min_value=1)


class AppreciationRunSerializer(serializers.ModelSerializer):
    duration_seconds = serializers.FloatField(read_only=True)

    class Meta:
        model = AppreciationRun
        fields = [
            "id",
            "started_at",
            "finished_at",
            "duration_seconds",
            "status",
            "trigger",
            "processed",
            "appreciated",
            "bonus_total",
            "errors",
        ]
        read_only_fields = fields


class AppreciationTierSerializer(serializers.Serializer):
    months = serializers.IntegerField()
    multiplier = serializers.CharField()
    bonus_percent = serializers.CharField()


class AppreciationJobSerializer(serializers.Serializer):
    schedule = AppreciationTierSerializer(many=True)
    recent_runs = AppreciationRunSerializer(many=True)


class AppreciationSummarySerializer(serializers.Serializer):
    processed = serializers.IntegerField()
    appreciated = serializers.IntegerField()
    bonus_total = serializers.IntegerField()
    errors = serializers.ListField(child=serializers.CharField())
    skipped = serializers.BooleanField()
    run_id = serializers.UUIDField()
