"""
Core views providing infrastructure endpoints and API error rendering.

- health_check: liveness/readiness probe for load balancers and Docker
- api_exception_handler: DRF exception handler that renders domain errors
  and authentication failures in the same JSON envelope
"""

from __future__ import annotations

import logging

from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health. The database is
        required; the cache only degrades the report because balance reads
        fall back to the ledger when the cache is unavailable.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.error("Health check database probe failed", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        cache.set("health_check", "ok", timeout=1)
        ok = cache.get("health_check") == "ok"
        health_status["cache"] = "connected" if ok else "disconnected"
    except Exception:
        health_status["cache"] = "disconnected"

    return JsonResponse(health_status, status=200 if is_healthy else 503)


def api_exception_handler(exc, context):
    """
    Render API errors as {"success": false, "error": ..., "error_code": ...}.

    Domain errors (BaseApplicationError) use their own http_status.
    Missing credentials become 401 with error_code "unauthenticated".
    Anything else falls through to DRF's default handler.
    """
    if isinstance(exc, BaseApplicationError):
        return Response(exc.to_dict(), status=exc.http_status)

    if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        return Response(
            {
                "success": False,
                "error": str(exc.detail),
                "error_code": "unauthenticated",
            },
            status=401,
        )

    response = exception_handler(exc, context)
    if response is not None and isinstance(exc, drf_exceptions.PermissionDenied):
        response.data = {
            "success": False,
            "error": str(exc.detail),
            "error_code": "permission_denied",
        }
    return response
