"""
Django admin configuration for the earnings ledger.

LedgerEntry is immutable in the admin: no add, edit or delete. Corrections
are made by appending adjustment entries through LedgerService.
"""

from django.contrib import admin

from .models import LedgerEntry


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """
    Admin configuration for LedgerEntry.

    Ledger entries are immutable - they cannot be edited or deleted
    through the admin interface.
    """

    list_display = [
        "id",
        "created_at",
        "identifier",
        "transaction_type",
        "source",
        "credits_amount",
        "usd_display",
        "reference_type",
        "last_appreciation_tier_months",
    ]
    list_filter = ["transaction_type", "source", "reference_type", "created_at"]
    search_fields = [
        "id",
        "identifier",
        "idempotency_key",
        "reference_id",
        "description",
    ]
    readonly_fields = [
        "id",
        "created_at",
        "identifier",
        "vendor",
        "transaction_type",
        "credits_amount",
        "usd_amount",
        "source",
        "reference_type",
        "reference_id",
        "idempotency_key",
        "last_appreciation_tier_months",
        "description",
        "metadata",
        "created_by",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            "Entry Details",
            {
                "fields": (
                    "id",
                    "identifier",
                    "vendor",
                    "transaction_type",
                    "source",
                    "credits_amount",
                    "usd_amount",
                    "created_at",
                ),
            },
        ),
        (
            "Reference",
            {
                "fields": ("reference_type", "reference_id", "idempotency_key"),
            },
        ),
        (
            "Appreciation",
            {
                "fields": ("last_appreciation_tier_months",),
            },
        ),
        (
            "Additional Info",
            {
                "fields": ("description", "metadata", "created_by"),
            },
        ),
    )

    @admin.display(description="USD")
    def usd_display(self, obj: LedgerEntry) -> str:
        return f"${obj.usd_amount:.2f}"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        """Entries are only created through LedgerService."""
        return False
