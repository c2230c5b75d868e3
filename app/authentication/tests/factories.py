"""
Factory Boy factories for authentication models.

Usage:
    from authentication.tests.factories import UserFactory

    customer = UserFactory()
    contractor = UserFactory(role=UserRole.CONTRACTOR)
    admin = UserFactory(role=UserRole.ADMIN, is_staff=True)
"""

import factory

from authentication.models import User, UserRole


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Creates active customers by default.

    Examples:
        user = UserFactory()
        contractor = ContractorFactory()
        user = UserFactory(stripe_customer_id="cus_existing")
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    role = UserRole.CUSTOMER
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )


class CustomerFactory(UserFactory):
    """Customer account (explicit alias for readability in tests)."""

    email = factory.Sequence(lambda n: f"customer{n}@example.com")
    role = UserRole.CUSTOMER


class ContractorFactory(UserFactory):
    """Contractor account."""

    email = factory.Sequence(lambda n: f"contractor{n}@example.com")
    role = UserRole.CONTRACTOR


class AdminFactory(UserFactory):
    """Platform admin account."""

    email = factory.Sequence(lambda n: f"admin{n}@example.com")
    role = UserRole.ADMIN
    is_staff = True
