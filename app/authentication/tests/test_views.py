"""
Tests for the JWT token endpoints.

Vendors and operators authenticate with email and password and use the
access token as a Bearer header on the earnings API.
"""

import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from earnings.tests.factories import VendorFactory

TOKEN_URL = reverse("authentication:token-obtain")
REFRESH_URL = reverse("authentication:token-refresh")


@pytest.fixture
def api_client():
    return APIClient()


class TestTokenObtain:
    def test_returns_access_and_refresh(self, api_client, user):
        response = api_client.post(
            TOKEN_URL, {"email": user.email, "password": "testpass123"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data
        assert "refresh" in response.data

    def test_wrong_password(self, api_client, user):
        response = api_client.post(
            TOKEN_URL, {"email": user.email, "password": "not-it"}, format="json"
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["error_code"] == "unauthenticated"

    def test_inactive_user(self, api_client, db):
        user = UserFactory(is_active=False)

        response = api_client.post(
            TOKEN_URL, {"email": user.email, "password": "testpass123"}, format="json"
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestTokenRefresh:
    def test_refresh_issues_new_access(self, api_client, user):
        tokens = api_client.post(
            TOKEN_URL, {"email": user.email, "password": "testpass123"}, format="json"
        ).data

        response = api_client.post(REFRESH_URL, {"refresh": tokens["refresh"]}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data

    def test_invalid_refresh_token(self, api_client, db):
        response = api_client.post(REFRESH_URL, {"refresh": "garbage"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestBearerAccess:
    def test_access_token_reaches_earnings_api(self, api_client, user):
        VendorFactory(user=user)
        access = api_client.post(
            TOKEN_URL, {"email": user.email, "password": "testpass123"}, format="json"
        ).data["access"]

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        response = api_client.get(reverse("earnings:balance"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["balance"]["available"] == 0
