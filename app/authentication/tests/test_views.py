"""
Tests for authentication endpoints.
"""

import pytest
from django.urls import reverse

from authentication.tests.factories import UserFactory


@pytest.mark.django_db
class TestTokenObtain:
    def test_obtain_token_with_email_and_password(self, api_client):
        UserFactory(email="login@example.com", password="Secret123!")

        response = api_client.post(
            reverse("authentication:token-obtain"),
            {"email": "login@example.com", "password": "Secret123!"},
            format="json",
        )

        assert response.status_code == 200
        assert "access" in response.data
        assert "refresh" in response.data

    def test_wrong_password_rejected(self, api_client):
        UserFactory(email="login@example.com", password="Secret123!")

        response = api_client.post(
            reverse("authentication:token-obtain"),
            {"email": "login@example.com", "password": "wrong"},
            format="json",
        )

        assert response.status_code == 401


@pytest.mark.django_db
class TestCurrentUser:
    def test_returns_current_user(self, authenticated_client, customer):
        response = authenticated_client.get(reverse("authentication:me"))

        assert response.status_code == 200
        assert response.data["data"]["email"] == customer.email
        assert response.data["data"]["role"] == "customer"

    def test_requires_authentication(self, api_client):
        response = api_client.get(reverse("authentication:me"))

        assert response.status_code == 401
        assert response.data["success"] is False
