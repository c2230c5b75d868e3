"""
URL configuration for memberships app.

All routes are prefixed with /api/v1/memberships/ in config/urls.py.
"""

from django.urls import path

from memberships.views import (
    AutoRenewView,
    CancelMembershipView,
    CheckoutSessionView,
    CurrentMembershipView,
    PlanListView,
)

app_name = "memberships"

urlpatterns = [
    path("checkout/", CheckoutSessionView.as_view(), name="checkout"),
    path("cancel/", CancelMembershipView.as_view(), name="cancel"),
    path("auto-renew/", AutoRenewView.as_view(), name="auto-renew"),
    path("current/", CurrentMembershipView.as_view(), name="current"),
    path("plans/", PlanListView.as_view(), name="plans"),
]
