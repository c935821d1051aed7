"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager creation rules
- test_views.py: JWT token endpoints

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_managers.py
"""
