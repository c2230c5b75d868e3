"""
JobPayment and JobPaymentRefund models.

JobPayment is the staged escrow ledger entry for one accepted bid. Its
amounts are fixed at creation; only the stage, the captured and refunded
totals, the per-stage intent slots and the failure marker move afterwards.

Stage changes never go through save(): the orchestrator advances stages
with conditional UPDATEs guarded by the current stage, so two concurrent
confirmations produce exactly one transition.

Usage:
    from payments.models import JobPayment
    from payments.state_machines import PaymentStage

    job_payment = JobPayment.objects.get(deposit_intent_id="pi_123")
    if job_payment.stage == PaymentStage.DEPOSIT_PAID:
        ...
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import PaymentStage, PaymentType, stage_fields


def get_default_currency() -> str:
    return settings.PAYMENT_CURRENCY


class JobPayment(UUIDPrimaryKeyMixin, BaseModel):
    """
    Staged escrow payment for a marketplace job.

    Fields:
        job_request_id / bid_id: External references (one record per bid)
        customer / contractor: Paying and receiving parties
        total_amount: Agreed bid amount in cents
        deposit_amount / pre_start_amount / completion_amount: Stage split
        platform_fee_percent / platform_fee_amount: Fee applied at creation
        captured_amount: Sum of confirmed stage payments
        refunded_amount: Sum of refunds
        uses_pre_start: Three-stage (True) or two-stage (False) policy
        stage: Current ledger stage
        *_intent_id: Latest PaymentIntent per stage
        *_paid_at: When each stage was confirmed
        last_payment_error / last_payment_error_at: Latest stage failure

    Invariants:
        deposit + pre_start + completion == total
        0 <= refunded_amount <= captured_amount <= total_amount
    """

    job_request_id = models.UUIDField(
        db_index=True,
        help_text="External job request reference",
    )
    bid_id = models.UUIDField(
        unique=True,
        help_text="External accepted bid reference (one payment per bid)",
    )
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="job_payments_made",
        help_text="Customer paying for the job",
    )
    contractor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="job_payments_received",
        help_text="Contractor performing the job",
    )

    # ==========================================================================
    # Amounts (cents)
    # ==========================================================================

    currency = models.CharField(
        max_length=3,
        default=get_default_currency,
        help_text="ISO currency code",
    )
    total_amount = models.PositiveBigIntegerField(
        help_text="Agreed bid amount in cents",
    )
    deposit_amount = models.PositiveBigIntegerField(
        help_text="Deposit stage amount in cents",
    )
    pre_start_amount = models.PositiveBigIntegerField(
        default=0,
        help_text="Pre-start stage amount in cents (0 for two-stage jobs)",
    )
    completion_amount = models.PositiveBigIntegerField(
        help_text="Completion stage amount in cents",
    )
    platform_fee_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        help_text="Platform fee percentage applied at creation",
    )
    platform_fee_amount = models.PositiveBigIntegerField(
        default=0,
        help_text="Platform fee in cents",
    )
    captured_amount = models.PositiveBigIntegerField(
        default=0,
        help_text="Sum of confirmed stage payments in cents",
    )
    refunded_amount = models.PositiveBigIntegerField(
        default=0,
        help_text="Sum of refunds in cents",
    )

    # ==========================================================================
    # Stage
    # ==========================================================================

    uses_pre_start = models.BooleanField(
        default=False,
        help_text="Three-stage (deposit, pre-start, completion) payment policy",
    )
    stage = models.CharField(
        max_length=32,
        choices=PaymentStage.choices,
        default=PaymentStage.PENDING,
        db_index=True,
        help_text="Current ledger stage",
    )

    deposit_intent_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Latest deposit PaymentIntent ID (pi_xxx)",
    )
    pre_start_intent_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Latest pre-start PaymentIntent ID (pi_xxx)",
    )
    completion_intent_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Latest completion PaymentIntent ID (pi_xxx)",
    )

    deposit_paid_at = models.DateTimeField(null=True, blank=True)
    pre_start_paid_at = models.DateTimeField(null=True, blank=True)
    completion_paid_at = models.DateTimeField(null=True, blank=True)

    last_payment_error = models.TextField(
        blank=True,
        default="",
        help_text="Latest stage payment failure message",
    )
    last_payment_error_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Job Payment"
        verbose_name_plural = "Job Payments"
        indexes = [
            models.Index(fields=["customer", "created_at"], name="job_payment_customer_idx"),
            models.Index(fields=["contractor", "created_at"], name="job_payment_contractor_idx"),
            models.Index(fields=["stage", "created_at"], name="job_payment_stage_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(refunded_amount__lte=models.F("captured_amount")),
                name="job_payment_refunded_lte_captured",
            ),
            models.CheckConstraint(
                condition=models.Q(captured_amount__lte=models.F("total_amount")),
                name="job_payment_captured_lte_total",
            ),
        ]

    def __str__(self) -> str:
        return f"JobPayment({self.id}, {self.stage}, {self.total_amount})"

    @property
    def refundable_amount(self) -> int:
        return self.captured_amount - self.refunded_amount

    def payment_type_for_intent(self, payment_intent_id: str) -> str | None:
        """Return which stage slot holds the intent, if any."""
        if not payment_intent_id:
            return None
        for payment_type in PaymentType.values:
            intent_field, _, _ = stage_fields(payment_type)
            if getattr(self, intent_field) == payment_intent_id:
                return payment_type
        return None

    def is_stage_paid(self, payment_type: str) -> bool:
        _, paid_at_field, _ = stage_fields(payment_type)
        return getattr(self, paid_at_field) is not None

    def stage_amount(self, payment_type: str) -> int:
        _, _, amount_field = stage_fields(payment_type)
        return getattr(self, amount_field)

    def outstanding_intent_types(self) -> list[str]:
        """Stages whose intent was requested but not yet confirmed."""
        outstanding = []
        for payment_type in PaymentType.values:
            intent_field, _, _ = stage_fields(payment_type)
            if getattr(self, intent_field) and not self.is_stage_paid(payment_type):
                outstanding.append(payment_type)
        return outstanding


class JobPaymentRefund(UUIDPrimaryKeyMixin, BaseModel):
    """
    One refund against a JobPayment.

    Refunds are additive rows; the fee breakdown is for reporting only and
    does not change what Stripe returns to the customer.

    Fields:
        job_payment: Refunded ledger entry
        payment_intent_id: Stage intent the refund was issued against
        amount: Refunded amount in cents
        admin_fee / stripe_fee: Retained fees (reporting)
        net_amount: amount - admin_fee - stripe_fee
        stripe_refund_id: Stripe Refund ID (re_xxx)
        reason: Free-text reason from the requester
        requested_by: User who requested the refund
        processed_at: When Stripe accepted the refund
    """

    job_payment = models.ForeignKey(
        JobPayment,
        on_delete=models.PROTECT,
        related_name="refunds",
    )
    payment_intent_id = models.CharField(max_length=255)
    amount = models.PositiveBigIntegerField(help_text="Refunded amount in cents")
    admin_fee = models.PositiveBigIntegerField(default=0)
    stripe_fee = models.PositiveBigIntegerField(default=0)
    net_amount = models.BigIntegerField(default=0)
    stripe_refund_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Refund ID (re_xxx)",
    )
    reason = models.TextField(blank=True, default="")
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="job_payment_refunds",
    )
    processed_at = models.DateTimeField()

    class Meta:
        ordering = ["processed_at"]
        verbose_name = "Job Payment Refund"
        verbose_name_plural = "Job Payment Refunds"

    def __str__(self) -> str:
        return f"JobPaymentRefund({self.stripe_refund_id}, {self.amount})"
