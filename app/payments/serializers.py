"""
DRF serializers for payments app.

Request serializers check shapes only; stage, ownership and balance rules
live in JobPaymentOrchestrator.

Usage:
    serializer = StagePaymentRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from payments.models import JobPayment, JobPaymentRefund
from payments.services.payment_history_service import DEFAULT_PAGE_SIZE, HISTORY_TYPES
from payments.state_machines import PaymentType

User = get_user_model()


# =============================================================================
# Job payments
# =============================================================================


class JobPaymentSerializer(serializers.ModelSerializer):
    """
    Job payment ledger entry.

    Stage intent ids are exposed so the client can match a confirmation to
    the stage it paid; client secrets are only returned by stage requests.
    """

    customer_id = serializers.IntegerField(read_only=True)
    contractor_id = serializers.IntegerField(read_only=True)
    refundable_amount = serializers.IntegerField(read_only=True)

    class Meta:
        model = JobPayment
        fields = [
            "id",
            "job_request_id",
            "bid_id",
            "customer_id",
            "contractor_id",
            "currency",
            "total_amount",
            "deposit_amount",
            "pre_start_amount",
            "completion_amount",
            "platform_fee_percent",
            "platform_fee_amount",
            "captured_amount",
            "refunded_amount",
            "refundable_amount",
            "uses_pre_start",
            "stage",
            "deposit_intent_id",
            "pre_start_intent_id",
            "completion_intent_id",
            "deposit_paid_at",
            "pre_start_paid_at",
            "completion_paid_at",
            "last_payment_error",
            "last_payment_error_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class JobPaymentRefundSerializer(serializers.ModelSerializer):
    requested_by_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = JobPaymentRefund
        fields = [
            "id",
            "payment_intent_id",
            "amount",
            "admin_fee",
            "stripe_fee",
            "net_amount",
            "stripe_refund_id",
            "reason",
            "requested_by_id",
            "processed_at",
        ]
        read_only_fields = fields


class JobPaymentDetailSerializer(JobPaymentSerializer):
    refunds = JobPaymentRefundSerializer(many=True, read_only=True)

    class Meta(JobPaymentSerializer.Meta):
        fields = [*JobPaymentSerializer.Meta.fields, "refunds"]
        read_only_fields = fields


class CreateJobPaymentSerializer(serializers.Serializer):
    job_request_id = serializers.UUIDField()
    contractor_id = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(),
        source="contractor",
    )
    bid_id = serializers.UUIDField()
    total_amount = serializers.IntegerField(min_value=1)
    uses_pre_start = serializers.BooleanField(required=False, default=False)


class StagePaymentRequestSerializer(serializers.Serializer):
    job_payment_id = serializers.UUIDField()


class StagePaymentResponseSerializer(serializers.Serializer):
    client_secret = serializers.CharField()
    payment_intent_id = serializers.CharField()
    payment_type = serializers.ChoiceField(choices=PaymentType.choices)
    job_payment = JobPaymentSerializer()


class RefundRequestSerializer(serializers.Serializer):
    job_payment_id = serializers.UUIDField()
    payment_intent_id = serializers.CharField(max_length=255)
    amount = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=1000)


class RefundResponseSerializer(serializers.Serializer):
    refund = JobPaymentRefundSerializer()
    job_payment = JobPaymentSerializer()


# =============================================================================
# Connect
# =============================================================================


class ConnectSetupResponseSerializer(serializers.Serializer):
    account_link = serializers.URLField()
    account_id = serializers.CharField()


class ConnectDashboardResponseSerializer(serializers.Serializer):
    dashboard_url = serializers.URLField()


class ConnectStatusSerializer(serializers.Serializer):
    has_connect_account = serializers.BooleanField()
    status = serializers.CharField()
    account_id = serializers.CharField(allow_null=True)
    charges_enabled = serializers.BooleanField()
    payouts_enabled = serializers.BooleanField()


# =============================================================================
# History
# =============================================================================


class PaymentHistoryQuerySerializer(serializers.Serializer):
    """limit above MAX_PAGE_SIZE is clamped by the service, not rejected."""

    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, default=DEFAULT_PAGE_SIZE)
    status = serializers.CharField(required=False, default="all")
    type = serializers.ChoiceField(
        choices=[*HISTORY_TYPES, "all"], required=False, default="all"
    )


class PaymentHistoryItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    type = serializers.CharField()
    status = serializers.CharField()
    amount = serializers.IntegerField()
    currency = serializers.CharField()
    created_at = serializers.DateTimeField()
    purpose = serializers.CharField()
    job_request_id = serializers.CharField(required=False)
    role = serializers.CharField(required=False)
