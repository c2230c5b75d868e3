"""
Pytest fixtures for membership tests.

Usage:
    def test_checkout(reconciler, customer, customer_plan, stripe_adapter):
        session = reconciler.create_checkout_session(
            customer, customer_plan.id, "monthly", "recurring", "https://localhost/m"
        )
        assert stripe_adapter.create_checkout_session.called
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from django.utils import timezone

from memberships.models import MembershipStatus, PlanUserType
from memberships.services import SubscriptionReconciler
from memberships.tests.factories import MembershipPlanFactory, MembershipRecordFactory
from payments.adapters import CheckoutSessionResult, CustomerResult


@pytest.fixture
def stripe_adapter():
    """StripeAdapter stand-in for checkout and subscription calls."""
    adapter = MagicMock(name="StripeAdapter")

    def create_checkout_session(params, trace_id=None):
        return CheckoutSessionResult(
            id="cs_new_1",
            url="https://checkout.stripe.com/c/pay/cs_new_1",
            mode=params.mode,
            metadata=params.metadata,
        )

    adapter.create_checkout_session.side_effect = create_checkout_session
    adapter.create_customer.return_value = CustomerResult(id="cus_test_123", email=None)
    return adapter


@pytest.fixture
def patched_stripe(stripe_adapter):
    """Route views' default StripeAdapter to the double."""
    with patch("memberships.services.StripeAdapter", stripe_adapter):
        yield stripe_adapter


@pytest.fixture
def reconciler(stripe_adapter):
    return SubscriptionReconciler(stripe_adapter=stripe_adapter)


@pytest.fixture
def checkout_urls(settings):
    settings.ALLOWED_CHECKOUT_DOMAINS = ["localhost", "example.com"]
    return "https://app.example.com/membership"


@pytest.fixture
def customer_plan(db):
    return MembershipPlanFactory(user_type=PlanUserType.CUSTOMER)


@pytest.fixture
def contractor_plan(db):
    return MembershipPlanFactory(user_type=PlanUserType.CONTRACTOR)


@pytest.fixture
def active_membership(customer, customer_plan):
    return MembershipRecordFactory(user=customer, plan=customer_plan)


@pytest.fixture
def cancelled_membership(customer, customer_plan):
    """Cancelled but still inside its paid period."""
    return MembershipRecordFactory(
        user=customer,
        plan=customer_plan,
        status=MembershipStatus.CANCELLED,
        is_auto_renew=False,
        cancelled_at=timezone.now(),
        renewal_date=timezone.now() + timedelta(days=10),
    )


def checkout_session_payload(user, plan, **overrides) -> dict:
    """checkout.session.completed object for a paid recurring monthly purchase."""
    payload = {
        "id": "cs_paid_1",
        "payment_status": "paid",
        "subscription": "sub_paid_1",
        "amount_total": plan.monthly_price,
        "metadata": {
            "user_id": str(user.pk),
            "plan_id": str(plan.id),
            "billing_period": "monthly",
            "billing_type": "recurring",
            "is_auto_renew": "true",
        },
    }
    metadata = overrides.pop("metadata", None)
    if metadata:
        payload["metadata"] = {**payload["metadata"], **metadata}
    payload.update(overrides)
    return payload


@pytest.fixture
def checkout_session():
    return checkout_session_payload
