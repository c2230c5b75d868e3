"""
DRF permission classes keyed on the marketplace role.

Usage:
    class DepositPaymentView(APIView):
        permission_classes = [IsAuthenticated, IsCustomer]
"""

from rest_framework.permissions import BasePermission


class IsCustomer(BasePermission):
    """Allow only customer accounts."""

    message = "Only customers can perform this action."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_customer)


class IsContractor(BasePermission):
    """Allow only contractor accounts."""

    message = "Only contractors can perform this action."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_contractor)


class IsPlatformAdmin(BasePermission):
    """Allow admins by role and superusers."""

    message = "Admin access required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin)


class IsCustomerOrPlatformAdmin(BasePermission):
    """Allow customers and admins (refund requests)."""

    message = "Only customers or admins can perform this action."

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and (user.is_customer or user.is_platform_admin)
        )


class IsNotPlatformAdmin(BasePermission):
    """Allow customers and contractors (membership purchase)."""

    message = "Admins cannot purchase memberships."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and not user.is_platform_admin)
