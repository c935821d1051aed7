"""
URL configuration for the earnings API.

Routes:
    /balance/               - Vendor balance (GET)
    /payouts/               - Vendor payout history (GET), redemption (POST)
    /admin/payouts/         - Settlement queue (GET), approve/reject (POST)
    /jobs/appreciation/     - Schedule and runs (GET), run job (POST)
"""

from django.urls import path

from earnings.views import (
    AdminPayoutView,
    AppreciationJobView,
    BalanceView,
    PayoutRequestView,
)

app_name = "earnings"
urlpatterns = [
    path("balance/", BalanceView.as_view(), name="balance"),
    path("payouts/", PayoutRequestView.as_view(), name="payouts"),
    path("admin/payouts/", AdminPayoutView.as_view(), name="admin-payouts"),
    path("jobs/appreciation/", AppreciationJobView.as_view(), name="appreciation-job"),
]
