"""
Authentication models.

User is a slim email-based account carrying the marketplace role and the
Stripe customer reference used when charging the user.

Related files:
    - managers.py: Custom user manager for email-based creation
    - permissions.py: DRF role permissions
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """Marketplace role of an account."""

    CUSTOMER = "customer", "Customer"
    CONTRACTOR = "contractor", "Contractor"
    ADMIN = "admin", "Admin"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: customer, contractor or admin
        stripe_customer_id: Gateway customer created on first payment
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        customer = User.objects.create_user(
            email="owner@example.com",
            password="securepassword",
        )
        contractor = User.objects.create_user(
            email="builder@example.com",
            password="securepassword",
            role=UserRole.CONTRACTOR,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
        db_index=True,
        help_text="Marketplace role",
    )
    stripe_customer_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe customer ID (cus_xxx), set on first payment",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.email

    def get_short_name(self):
        return self.email.split("@")[0]

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

    @property
    def is_contractor(self) -> bool:
        return self.role == UserRole.CONTRACTOR

    @property
    def is_platform_admin(self) -> bool:
        """Admins by role or Django superusers."""
        return self.role == UserRole.ADMIN or self.is_superuser
