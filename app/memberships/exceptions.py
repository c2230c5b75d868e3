"""
Membership-specific exceptions.

Exception Hierarchy:
    NotFoundError (core)
    ├── MembershipNotFoundError - User has no membership to act on
    └── PlanNotFoundError - Unknown or inactive plan
    ValidationError (core)
    └── CheckoutValidationError - Plan, period, billing type or URL rejected
"""

from core.exceptions import NotFoundError, ValidationError


class MembershipNotFoundError(NotFoundError):
    default_error_code: str = "MEMBERSHIP_NOT_FOUND"


class PlanNotFoundError(NotFoundError):
    default_error_code: str = "PLAN_NOT_FOUND"


class CheckoutValidationError(ValidationError):
    """Raised when a checkout request cannot be turned into a session."""

    default_error_code: str = "INVALID_CHECKOUT"


__all__ = [
    "CheckoutValidationError",
    "MembershipNotFoundError",
    "PlanNotFoundError",
]
