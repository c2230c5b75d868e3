"""
Tests for membership API views.
"""

import uuid

import pytest
from django.urls import reverse

from memberships.models import MembershipStatus
from memberships.tests.factories import MembershipPlanFactory


@pytest.mark.django_db
class TestCheckoutSessionView:
    url = reverse("memberships:checkout")

    def test_creates_session(self, customer_client, customer_plan, checkout_urls, patched_stripe):
        response = customer_client.post(
            self.url,
            {
                "plan_id": str(customer_plan.id),
                "billing_period": "monthly",
                "billing_type": "recurring",
                "url": checkout_urls,
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.json() == {
            "success": True,
            "data": {
                "url": "https://checkout.stripe.com/c/pay/cs_new_1",
                "session_id": "cs_new_1",
            },
        }

    def test_unknown_plan(self, customer_client, checkout_urls, patched_stripe):
        response = customer_client.post(
            self.url,
            {
                "plan_id": str(uuid.uuid4()),
                "billing_period": "monthly",
                "billing_type": "recurring",
                "url": checkout_urls,
            },
            format="json",
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PLAN_NOT_FOUND"

    def test_disallowed_url(self, customer_client, customer_plan, checkout_urls, patched_stripe):
        response = customer_client.post(
            self.url,
            {
                "plan_id": str(customer_plan.id),
                "billing_period": "monthly",
                "billing_type": "recurring",
                "url": "https://phishing.test/membership",
            },
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_URL"
        assert not patched_stripe.create_checkout_session.called

    def test_invalid_billing_type(self, customer_client, customer_plan, checkout_urls):
        response = customer_client.post(
            self.url,
            {
                "plan_id": str(customer_plan.id),
                "billing_period": "monthly",
                "billing_type": "lifetime",
                "url": checkout_urls,
            },
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_admin_forbidden(self, platform_admin_client, customer_plan, checkout_urls):
        response = platform_admin_client.post(
            self.url,
            {
                "plan_id": str(customer_plan.id),
                "billing_period": "monthly",
                "billing_type": "recurring",
                "url": checkout_urls,
            },
            format="json",
        )

        assert response.status_code == 403

    def test_requires_authentication(self, api_client):
        response = api_client.post(self.url, {}, format="json")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"


@pytest.mark.django_db
class TestMembershipActionViews:
    def test_cancel(self, customer_client, active_membership, patched_stripe):
        response = customer_client.post(
            reverse("memberships:cancel"), {"reason": "budget"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == MembershipStatus.CANCELLED
        assert data["has_access"] is True

    def test_cancel_without_membership(self, customer_client, patched_stripe):
        response = customer_client.post(reverse("memberships:cancel"), {}, format="json")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "MEMBERSHIP_NOT_FOUND"

    def test_auto_renew(self, customer_client, active_membership):
        response = customer_client.post(
            reverse("memberships:auto-renew"), {"is_auto_renew": False}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["data"]["is_auto_renew"] is False

    def test_current(self, customer_client, active_membership):
        response = customer_client.get(reverse("memberships:current"))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == str(active_membership.id)
        assert data["plan"]["id"] == str(active_membership.plan_id)

    def test_current_when_none(self, customer_client):
        response = customer_client.get(reverse("memberships:current"))

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": None}


@pytest.mark.django_db
class TestPlanListView:
    def test_lists_active_plans_without_auth(self, api_client):
        active = MembershipPlanFactory()
        MembershipPlanFactory(is_active=False)

        response = api_client.get(reverse("memberships:plans"))

        assert response.status_code == 200
        assert [plan["id"] for plan in response.json()["data"]] == [str(active.id)]

    def test_filters_by_user_type(self, api_client, customer_plan, contractor_plan):
        response = api_client.get(reverse("memberships:plans"), {"user_type": "contractor"})

        assert [plan["id"] for plan in response.json()["data"]] == [str(contractor_plan.id)]
