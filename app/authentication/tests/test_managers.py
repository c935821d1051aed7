"""
Tests for UserManager.

Covers email-based creation of regular users and superusers:
password hashing, email normalization and default flags.
"""

import pytest

from authentication.models import User


class TestUserManagerCreateUser:
    """Tests for UserManager.create_user() method."""

    def test_creates_user_with_email_and_password(self, db):
        """
        Given valid email and password
        When create_user is called
        Then a user is created with those credentials
        """
        user = User.objects.create_user(
            email="mgr_create_user@example.com", password="SecurePass123!"
        )

        assert user.pk is not None
        assert user.email == "mgr_create_user@example.com"
        assert user.check_password("SecurePass123!") is True

    def test_normalizes_email_domain_to_lowercase(self, db):
        """The domain part is lowercased; the local part is preserved."""
        user = User.objects.create_user(email="Test.User@EXAMPLE.COM", password="x")

        assert user.email == "Test.User@example.com"

    def test_user_without_password_has_unusable_password(self, db):
        """Users created without a password cannot log in with one."""
        user = User.objects.create_user(email="nopass@example.com")

        assert user.has_usable_password() is False

    def test_regular_user_is_not_staff(self, db):
        """Regular users cannot settle payouts."""
        user = User.objects.create_user(email="regular@example.com", password="x")

        assert user.is_staff is False
        assert user.is_superuser is False

    def test_missing_email_raises_value_error(self, db):
        """An empty email is rejected before touching the database."""
        with pytest.raises(ValueError, match="Email field must be set"):
            User.objects.create_user(email="", password="x")


class TestUserManagerCreateSuperuser:
    """Tests for UserManager.create_superuser() method."""

    def test_creates_staff_superuser(self, db):
        """Superusers are staff and superuser by default."""
        admin = User.objects.create_superuser(email="ops@example.com", password="x")

        assert admin.is_staff is True
        assert admin.is_superuser is True

    def test_rejects_superuser_without_staff_flag(self, db):
        """A superuser must keep is_staff=True."""
        with pytest.raises(ValueError, match="is_staff=True"):
            User.objects.create_superuser(
                email="ops2@example.com", password="x", is_staff=False
            )
