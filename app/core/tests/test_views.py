"""
Tests for the health probe and the API exception handler.
"""

from unittest.mock import MagicMock

from django.db import DatabaseError
from django.urls import reverse
from rest_framework import exceptions as drf_exceptions

from core.exceptions import ConflictError
from core.views import api_exception_handler


class TestHealthCheck:
    def test_healthy(self, client, db):
        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_database_down(self, client, mocker):
        connection = mocker.patch("core.views.connection")
        connection.cursor.side_effect = DatabaseError("connection refused")

        response = client.get(reverse("health_check"))

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"

    def test_cache_down_is_still_healthy(self, client, db, mocker):
        cache = mocker.patch("core.views.cache")
        cache.set.side_effect = ConnectionError("redis down")

        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json()["cache"] == "disconnected"


class TestApiExceptionHandler:
    def test_application_error_uses_own_status(self):
        exc = ConflictError("Busy", error_code="lock_acquisition_failed")

        response = api_exception_handler(exc, {})

        assert response.status_code == 409
        assert response.data["error_code"] == "lock_acquisition_failed"

    def test_not_authenticated_is_401(self):
        response = api_exception_handler(drf_exceptions.NotAuthenticated(), {})

        assert response.status_code == 401
        assert response.data["error_code"] == "unauthenticated"

    def test_permission_denied_envelope(self):
        response = api_exception_handler(
            drf_exceptions.PermissionDenied(), {"view": MagicMock(), "request": None}
        )

        assert response.status_code == 403
        assert response.data["success"] is False
        assert response.data["error_code"] == "permission_denied"

    def test_unhandled_exception_falls_through(self):
        assert api_exception_handler(RuntimeError("boom"), {}) is None
