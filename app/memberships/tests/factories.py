"""
Factory Boy factories for membership test data.

Usage:
    from memberships.tests.factories import MembershipPlanFactory, MembershipRecordFactory

    plan = MembershipPlanFactory(tier=PlanTier.PREMIUM)
    record = MembershipRecordFactory(user=customer, plan=plan)
"""

from datetime import timedelta

import factory
from django.utils import timezone

from authentication.tests.factories import CustomerFactory
from memberships.models import (
    BillingPeriod,
    BillingType,
    MembershipPlan,
    MembershipRecord,
    MembershipStatus,
    PlanTier,
    PlanUserType,
)


class MembershipPlanFactory(factory.django.DjangoModelFactory):
    """Active customer plan with Stripe prices for both periods."""

    class Meta:
        model = MembershipPlan

    name = factory.Sequence(lambda n: f"Plan {n}")
    user_type = PlanUserType.CUSTOMER
    tier = PlanTier.BASIC
    monthly_price = 1_999
    yearly_price = 19_999
    stripe_price_id_monthly = factory.Sequence(lambda n: f"price_monthly_{n}")
    stripe_price_id_yearly = factory.Sequence(lambda n: f"price_yearly_{n}")
    is_active = True


class MembershipRecordFactory(factory.django.DjangoModelFactory):
    """
    Active recurring monthly membership renewing in 30 days.

    Examples:
        MembershipRecordFactory(status=MembershipStatus.CANCELLED)
        MembershipRecordFactory(stripe_subscription_id=None,
                                billing_type=BillingType.ONE_TIME)
    """

    class Meta:
        model = MembershipRecord

    user = factory.SubFactory(CustomerFactory)
    plan = factory.SubFactory(MembershipPlanFactory)
    billing_period = BillingPeriod.MONTHLY
    billing_type = BillingType.RECURRING
    stripe_subscription_id = factory.Sequence(lambda n: f"sub_test_{n}")
    stripe_checkout_session_id = factory.Sequence(lambda n: f"cs_test_{n}")
    status = MembershipStatus.ACTIVE
    start_date = factory.LazyFunction(timezone.now)
    renewal_date = factory.LazyFunction(lambda: timezone.now() + timedelta(days=30))
    is_auto_renew = True
    amount_paid = 1_999
