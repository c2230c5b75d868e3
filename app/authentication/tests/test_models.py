"""
Tests for the User model and its manager.
"""

import pytest

from authentication.models import User, UserRole
from authentication.tests.factories import (
    AdminFactory,
    ContractorFactory,
    CustomerFactory,
)


@pytest.mark.django_db
class TestUserManager:
    """Tests for email-based user creation."""

    def test_create_user_normalizes_email(self):
        user = User.objects.create_user(email="Owner@EXAMPLE.com", password="pw")

        assert user.email == "Owner@example.com"
        assert user.check_password("pw")
        assert user.role == UserRole.CUSTOMER

    def test_create_user_without_password(self):
        user = User.objects.create_user(email="nopass@example.com")

        assert not user.has_usable_password()

    def test_create_user_requires_email(self):
        with pytest.raises(ValueError):
            User.objects.create_user(email="", password="pw")

    def test_create_superuser_is_admin(self):
        admin = User.objects.create_superuser(email="root@example.com", password="pw")

        assert admin.is_staff
        assert admin.is_superuser
        assert admin.role == UserRole.ADMIN
        assert admin.is_platform_admin

    def test_create_superuser_rejects_non_staff(self):
        with pytest.raises(ValueError):
            User.objects.create_superuser(
                email="root@example.com", password="pw", is_staff=False
            )


@pytest.mark.django_db
class TestUserRoles:
    """Tests for role helpers."""

    def test_customer_flags(self):
        user = CustomerFactory()

        assert user.is_customer
        assert not user.is_contractor
        assert not user.is_platform_admin

    def test_contractor_flags(self):
        user = ContractorFactory()

        assert user.is_contractor
        assert not user.is_customer

    def test_admin_flags(self):
        assert AdminFactory().is_platform_admin

    def test_stripe_customer_id_defaults_empty(self):
        assert CustomerFactory().stripe_customer_id == ""

    def test_str_is_email(self):
        user = CustomerFactory(email="someone@example.com")

        assert str(user) == "someone@example.com"
