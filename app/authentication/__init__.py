"""
Authentication application.

Email-based accounts with a marketplace role (customer, contractor, admin)
and JWT token endpoints.

Usage:
    from authentication.models import User, UserRole
    from authentication.permissions import IsCustomer, IsContractor
"""
