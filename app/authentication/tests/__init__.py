"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User and manager tests
- test_permissions.py: Role permission tests
- test_views.py: Token and current-user endpoint tests

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_models.py
"""
