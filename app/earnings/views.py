"""
Views for the earnings API.

Endpoints:
    Vendor:
        GET  /api/v1/earnings/balance/ - Balance snapshot and recent ledger entries
        GET  /api/v1/earnings/payouts/ - Vendor's payout requests
        POST /api/v1/earnings/payouts/ - Redeem the available balance

    Admin:
        GET  /api/v1/earnings/admin/payouts/?status= - Settlement queue
        POST /api/v1/earnings/admin/payouts/ - Approve or reject a request

    Jobs:
        GET  /api/v1/earnings/jobs/appreciation/ - Tier schedule and recent runs
        POST /api/v1/earnings/jobs/appreciation/ - Run appreciation (X-Cron-Secret)

Errors are rendered by core.views.api_exception_handler as
{"success": false, "error": ..., "error_code": ..., "details": ...}.
"""

from __future__ import annotations

import hmac
import logging

from django.conf import settings

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema

from core.exceptions import BaseApplicationError
from earnings.exceptions import PersistenceError, VendorNotFoundError
from earnings.models import Vendor
from earnings.serializers import (
    AdminPayoutRequestSerializer,
    AppreciationJobSerializer,
    AppreciationRunSerializer,
    AppreciationSummarySerializer,
    BalanceResponseSerializer,
    LedgerEntrySerializer,
    PayoutActionSerializer,
    PayoutRequestSerializer,
    RedemptionResponseSerializer,
)
from earnings.services import (
    AppreciationService,
    RedemptionService,
    SettlementService,
    get_balance_calculator,
    schedule_definition,
)
from earnings.state_machines import AppreciationTrigger

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20
MAX_HISTORY_LIMIT = 100
RECENT_RUNS_LIMIT = 10

APPROVAL_FAILED_MESSAGE = (
    "Payout was approved but payment processing failed and must be checked manually"
)


# =============================================================================
# Helper Functions
# =============================================================================


def _vendor_for(user) -> Vendor:
    """The active vendor profile of the authenticated user."""
    vendor = getattr(user, "vendor_profile", None)
    if vendor is None:
        raise VendorNotFoundError(
            "No vendor profile for this account",
            details={"user_id": user.pk},
        )
    return vendor


def _history_limit(request) -> int:
    try:
        limit = int(request.query_params.get("limit", DEFAULT_HISTORY_LIMIT))
    except (TypeError, ValueError):
        return DEFAULT_HISTORY_LIMIT
    return max(1, min(limit, MAX_HISTORY_LIMIT))


def _verify_cron_secret(provided: str, secret: str) -> bool:
    return bool(provided) and hmac.compare_digest(provided.encode(), secret.encode())


def _processing_error() -> Response:
    return Response(
        {
            "success": False,
            "error": "Payout request could not be processed",
            "error_code": "processing_error",
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# =============================================================================
# Vendor Endpoints
# =============================================================================


class BalanceView(APIView):
    """Balance snapshot for the authenticated vendor."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_earnings_balance",
        summary="Get balance",
        description=(
            "Available, pending, held and total balance in credits and USD, "
            "with the newest ledger entries."
        ),
        parameters=[
            OpenApiParameter(
                name="limit",
                type=int,
                location=OpenApiParameter.QUERY,
                description=f"Ledger entries to include (max {MAX_HISTORY_LIMIT})",
                required=False,
            ),
        ],
        responses={
            200: BalanceResponseSerializer,
            401: OpenApiResponse(description="Not authenticated"),
            404: OpenApiResponse(description="No vendor profile"),
        },
        tags=["Earnings - Vendor"],
    )
    def get(self, request):
        vendor = _vendor_for(request.user)
        calculator = get_balance_calculator()
        identifier = vendor.collector_identifier

        snapshot = calculator.balance(identifier)
        history = calculator.ledger_history(identifier, limit=_history_limit(request))

        return Response(
            {
                "success": True,
                "balance": snapshot.to_dict(),
                "history": LedgerEntrySerializer(history, many=True).data,
            }
        )


class PayoutRequestView(APIView):
    """Redemption endpoint and the vendor's payout history."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_vendor_payouts",
        summary="List payout requests",
        description="The authenticated vendor's payout requests, newest first.",
        responses={200: PayoutRequestSerializer(many=True)},
        tags=["Earnings - Vendor"],
    )
    def get(self, request):
        vendor = _vendor_for(request.user)
        payouts = RedemptionService.history(vendor)
        return Response(
            {"success": True, "results": PayoutRequestSerializer(payouts, many=True).data}
        )

    @extend_schema(
        operation_id="request_payout",
        summary="Request payout",
        description=(
            "Redeem the full available balance to the vendor's PayPal address. "
            "No request body."
        ),
        request=None,
        responses={
            201: RedemptionResponseSerializer,
            400: OpenApiResponse(description="below_minimum or invalid_destination"),
            401: OpenApiResponse(description="unauthenticated"),
            404: OpenApiResponse(description="No vendor profile"),
            409: OpenApiResponse(description="duplicate_request (includes existing id/amount)"),
            500: OpenApiResponse(description="processing_error"),
        },
        tags=["Earnings - Vendor"],
    )
    def post(self, request):
        vendor = _vendor_for(request.user)
        try:
            payout_request = RedemptionService.request_payout(vendor)
        except PersistenceError as e:
            logger.error(
                "Payout request could not be stored",
                extra={"vendor_id": str(vendor.id), "error": e.message},
            )
            return _processing_error()
        except BaseApplicationError:
            raise
        except Exception:
            logger.error(
                "Unexpected error creating payout request",
                extra={"vendor_id": str(vendor.id)},
                exc_info=True,
            )
            return _processing_error()

        return Response(
            {
                "success": True,
                "payoutId": str(payout_request.id),
                "amount": str(payout_request.amount_usd),
                "reference": payout_request.reference,
                "status": payout_request.status,
            },
            status=status.HTTP_201_CREATED,
        )


# =============================================================================
# Admin Endpoints
# =============================================================================


class AdminPayoutView(APIView):
    """Settlement queue and approve/reject actions."""

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="list_settlement_queue",
        summary="List payout requests for settlement",
        parameters=[
            OpenApiParameter(
                name="status",
                type=str,
                location=OpenApiParameter.QUERY,
                description="requested, processing, completed, failed or rejected",
                required=False,
            ),
        ],
        responses={200: AdminPayoutRequestSerializer(many=True)},
        tags=["Earnings - Admin"],
    )
    def get(self, request):
        queryset = SettlementService.list_payout_requests(
            status=request.query_params.get("status") or None
        ).prefetch_related("audit_items__line_item")
        return Response(
            {
                "success": True,
                "results": AdminPayoutRequestSerializer(queryset, many=True).data,
            }
        )

    @extend_schema(
        operation_id="settle_payout_request",
        summary="Approve or reject a payout request",
        description=(
            "Approve sends the payout to PayPal; reject frees the audited line "
            "items. If PayPal fails after approval the request is marked failed "
            "and a 500 is returned."
        ),
        request=PayoutActionSerializer,
        responses={
            200: AdminPayoutRequestSerializer,
            400: OpenApiResponse(description="Invalid body or destination"),
            404: OpenApiResponse(description="Unknown payoutId"),
            409: OpenApiResponse(description="Invalid state, stale version or action in progress"),
            500: OpenApiResponse(description="Approved but payment processing failed"),
        },
        tags=["Earnings - Admin"],
    )
    def post(self, request):
        serializer = PayoutActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = SettlementService.process_action(
            data["payoutId"],
            data["action"],
            operator=request.user,
            reason=data.get("reason"),
            expected_version=data.get("version"),
        )
        payout = AdminPayoutRequestSerializer(result.data).data if result.data else None

        if not result.success:
            return Response(
                {
                    "success": False,
                    "error": APPROVAL_FAILED_MESSAGE,
                    "error_code": result.error_code,
                    "details": {"reason": result.error},
                    "payout": payout,
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({"success": True, "payout": payout})


# =============================================================================
# Job Endpoints
# =============================================================================


class AppreciationJobView(APIView):
    """
    Appreciation scheduler endpoint.

    GET is public and read-only. POST requires the X-Cron-Secret header to
    match APPRECIATION_JOB_SECRET.
    """

    permission_classes = [AllowAny]
    authentication_classes = []  # Secret-header validation

    @extend_schema(
        operation_id="get_appreciation_job",
        summary="Appreciation schedule and recent runs",
        responses={200: AppreciationJobSerializer},
        tags=["Earnings - Jobs"],
    )
    def get(self, request):
        runs = AppreciationService.recent_runs(limit=RECENT_RUNS_LIMIT)
        return Response(
            {
                "schedule": schedule_definition(),
                "recent_runs": AppreciationRunSerializer(runs, many=True).data,
            }
        )

    @extend_schema(
        operation_id="run_appreciation_job",
        summary="Run appreciation",
        description="Runs the appreciation job synchronously and returns its summary.",
        request=None,
        responses={
            200: AppreciationSummarySerializer,
            401: OpenApiResponse(description="Missing or wrong X-Cron-Secret"),
            503: OpenApiResponse(description="APPRECIATION_JOB_SECRET not configured"),
        },
        tags=["Earnings - Jobs"],
    )
    def post(self, request):
        secret = getattr(settings, "APPRECIATION_JOB_SECRET", "") or ""
        if not secret:
            logger.error("Appreciation job secret not configured, rejecting request")
            return Response(
                {
                    "success": False,
                    "error": "Appreciation job is not configured",
                    "error_code": "job_not_configured",
                },
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        if not _verify_cron_secret(request.headers.get("X-Cron-Secret", ""), secret):
            logger.warning("Appreciation job secret verification failed")
            return Response(
                {
                    "success": False,
                    "error": "Invalid cron secret",
                    "error_code": "unauthenticated",
                },
                status=status.HTTP_401_UNAUTHORIZED,
            )

        summary = AppreciationService.run_appreciation(trigger=AppreciationTrigger.HTTP)
        return Response({"success": True, **summary})
