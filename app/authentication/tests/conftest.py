"""
Test configuration and fixtures for authentication tests.
"""

import pytest

from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    """Create an active user."""
    return UserFactory()
