"""
Authentication application.

Provides the email-based User model that vendors and operators sign in
with. Token issuing is handled by rest_framework_simplejwt.

Usage:
    from authentication.models import User
"""
