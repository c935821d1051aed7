"""
Earnings admin configuration.

This file imports the ledger admin and registers the earnings domain
models with the Django admin. Payout status changes go through
SettlementService (the admin endpoint), never through the admin forms.
"""

from django.contrib import admin, messages

from core.exceptions import ValidationError
from earnings.ledger.admin import LedgerEntryAdmin
from earnings.models import (
    AppreciationRun,
    FulfilledLineItem,
    PayoutItemAudit,
    PayoutRequest,
    Vendor,
)
from earnings.services import SettlementService

__all__ = [
    "LedgerEntryAdmin",
    "VendorAdmin",
    "FulfilledLineItemAdmin",
    "PayoutRequestAdmin",
    "PayoutItemAuditAdmin",
    "AppreciationRunAdmin",
]


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = [
        "vendor_name",
        "user",
        "paypal_email",
        "is_active",
        "available_credits",
        "created_at",
    ]
    list_filter = ["is_active"]
    search_fields = ["vendor_name", "paypal_email", "user__email"]
    readonly_fields = ["id", "available_credits", "created_at", "updated_at"]
    raw_id_fields = ["user"]


@admin.register(FulfilledLineItem)
class FulfilledLineItemAdmin(admin.ModelAdmin):
    list_display = [
        "line_item_id",
        "vendor",
        "order_name",
        "price_cents",
        "payout_cents",
        "fulfillment_status",
        "fulfilled_at",
    ]
    list_filter = ["fulfillment_status"]
    search_fields = ["line_item_id", "order_id", "order_name", "vendor__vendor_name"]
    readonly_fields = ["id", "payout_cents", "created_at", "updated_at"]


class PayoutItemAuditInline(admin.TabularInline):
    model = PayoutItemAudit
    extra = 0
    fields = ["line_item", "payout_cents", "manually_marked_paid"]
    readonly_fields = ["line_item", "payout_cents", "manually_marked_paid"]
    can_delete = False


@admin.register(PayoutRequest)
class PayoutRequestAdmin(admin.ModelAdmin):
    """
    Admin configuration for PayoutRequest.

    Status is read-only here; approve and reject go through the settlement
    endpoint so the processor call and notifications happen.
    """

    list_display = [
        "reference",
        "vendor",
        "amount_display",
        "status",
        "processor_status",
        "processed_by",
        "created_at",
    ]
    list_filter = ["status", "created_at"]
    search_fields = [
        "id",
        "reference",
        "invoice_number",
        "vendor__vendor_name",
        "destination",
        "processor_batch_id",
    ]
    readonly_fields = [
        "id",
        "vendor",
        "vendor_identifier",
        "amount_cents",
        "currency",
        "status",
        "destination",
        "reference",
        "invoice_number",
        "notes",
        "processor_batch_id",
        "processor_status",
        "processed_by",
        "rejected_reason",
        "processed_at",
        "completed_at",
        "failed_at",
        "rejected_at",
        "version",
        "created_at",
        "updated_at",
    ]
    inlines = [PayoutItemAuditInline]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "vendor", "vendor_identifier", "reference", "invoice_number"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount_cents", "currency", "destination"),
            },
        ),
        (
            "Status",
            {
                "fields": (
                    "status",
                    "processed_by",
                    "rejected_reason",
                    "processor_batch_id",
                    "processor_status",
                    "notes",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "processed_at",
                    "completed_at",
                    "failed_at",
                    "rejected_at",
                    "created_at",
                    "updated_at",
                    "version",
                ),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: PayoutRequest) -> str:
        return f"${obj.amount_usd} {obj.currency}"

    def has_add_permission(self, request) -> bool:
        """Requests are only created through RedemptionService."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(PayoutItemAudit)
class PayoutItemAuditAdmin(admin.ModelAdmin):
    list_display = ["payout_request", "line_item", "payout_cents", "manually_marked_paid"]
    list_filter = ["manually_marked_paid"]
    search_fields = ["payout_request__reference", "line_item__line_item_id"]
    readonly_fields = [
        "id",
        "payout_request",
        "line_item",
        "payout_cents",
        "manually_marked_paid",
        "created_at",
    ]
    actions = ["mark_paid"]

    @admin.action(description="Mark selected items as paid")
    def mark_paid(self, request, queryset):
        line_item_ids = queryset.values_list("line_item__line_item_id", flat=True)
        try:
            result = SettlementService.mark_items_paid(line_item_ids, operator=request.user)
        except ValidationError as e:
            self.message_user(request, e.message, level=messages.ERROR)
            return
        self.message_user(request, f"Marked {result.data} item(s) as paid.")


@admin.register(AppreciationRun)
class AppreciationRunAdmin(admin.ModelAdmin):
    list_display = [
        "started_at",
        "finished_at",
        "status",
        "trigger",
        "processed",
        "appreciated",
        "bonus_total",
    ]
    list_filter = ["status", "trigger"]
    readonly_fields = [
        "id",
        "started_at",
        "finished_at",
        "status",
        "trigger",
        "processed",
        "appreciated",
        "bonus_total",
        "errors",
    ]
    ordering = ["-started_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False
