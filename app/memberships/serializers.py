"""
Serializers for membership plans, records and membership actions.

Request serializers only check shapes; plan, role and URL rules live in
SubscriptionReconciler so webhook and REST paths share them.
"""

from __future__ import annotations

from rest_framework import serializers

from memberships.models import BillingPeriod, BillingType, MembershipPlan, MembershipRecord


class MembershipPlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = MembershipPlan
        fields = [
            "id",
            "name",
            "description",
            "user_type",
            "tier",
            "monthly_price",
            "yearly_price",
            "platform_fee_percent",
            "features",
            "display_order",
        ]
        read_only_fields = fields


class MembershipRecordSerializer(serializers.ModelSerializer):
    """
    A user's membership with its plan inlined.

    has_access is true while the paid period lasts, including after
    cancellation.
    """

    plan = MembershipPlanSerializer(read_only=True)
    has_access = serializers.SerializerMethodField()

    class Meta:
        model = MembershipRecord
        fields = [
            "id",
            "plan",
            "status",
            "billing_period",
            "billing_type",
            "start_date",
            "renewal_date",
            "is_auto_renew",
            "cancelled_at",
            "amount_paid",
            "payment_failed_at",
            "has_access",
            "created_at",
        ]
        read_only_fields = fields

    def get_has_access(self, obj: MembershipRecord) -> bool:
        return obj.has_access()


class CheckoutRequestSerializer(serializers.Serializer):
    plan_id = serializers.UUIDField()
    billing_period = serializers.ChoiceField(choices=BillingPeriod.choices)
    billing_type = serializers.ChoiceField(choices=BillingType.choices)
    url = serializers.URLField(max_length=2048)


class CheckoutResponseSerializer(serializers.Serializer):
    url = serializers.URLField()
    session_id = serializers.CharField()


class CancelMembershipSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class AutoRenewSerializer(serializers.Serializer):
    is_auto_renew = serializers.BooleanField()
