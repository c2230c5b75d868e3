"""
Test configuration and fixtures for authentication tests.

User fixtures (customer, contractor, platform_admin) and api_client come
from app/conftest.py.

Usage:
    def test_example(customer, authenticated_client):
        response = authenticated_client.get("/api/v1/auth/me/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient


@pytest.fixture
def authenticated_client(customer):
    """API client authenticated as the customer fixture."""
    client = APIClient()
    client.force_authenticate(user=customer)
    return client
