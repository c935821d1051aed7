"""
URL configuration for authentication app.

Vendors and operators sign in with email and password and receive a JWT
pair from simplejwt.

URL structure:
    /api/v1/auth/token/           - Obtain access/refresh pair (POST)
    /api/v1/auth/token/refresh/   - Exchange a refresh token (POST)
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

app_name = "authentication"

urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
]
