"""
Earnings app configuration.

This app provides vendor earnings infrastructure including:
- Append-only credit ledger
- Balance calculation with an injected cache
- Payout redemption and PayPal settlement
- Scheduled appreciation bonuses
"""

from django.apps import AppConfig


class EarningsConfig(AppConfig):
    """Configuration for the earnings application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "earnings"
    verbose_name = "Earnings"
