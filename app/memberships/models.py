"""
Membership plans and records.

MembershipRecord.status is a django-fsm field:

    active    --cancel-->     cancelled   (access continues until renewal_date)
    cancelled --reactivate--> active      (renewal re-enabled before the anchor)
    active    --expire-->     expired
    cancelled --expire-->     expired

A partial unique constraint keeps at most one active record per user; the
reconciler changes records under select_for_update() so the constraint is
never the first line of defence.

Usage:
    from memberships.models import MembershipRecord

    membership = MembershipRecord.objects.current_for(user)
    if membership and membership.plan.tier == PlanTier.PREMIUM:
        ...
"""

from __future__ import annotations

from datetime import datetime

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class PlanUserType(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    CONTRACTOR = "contractor", "Contractor"


class PlanTier(models.TextChoices):
    BASIC = "basic", "Basic"
    STANDARD = "standard", "Standard"
    PREMIUM = "premium", "Premium"


class BillingPeriod(models.TextChoices):
    MONTHLY = "monthly", "Monthly"
    YEARLY = "yearly", "Yearly"


class BillingType(models.TextChoices):
    """Recurring maps to a Stripe subscription, one-time to a single payment."""

    RECURRING = "recurring", "Recurring"
    ONE_TIME = "one-time", "One-time"


class MembershipStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    CANCELLED = "cancelled", "Cancelled"
    EXPIRED = "expired", "Expired"


def add_billing_period(start: datetime, billing_period: str) -> datetime:
    """Calendar month or year after start."""
    if billing_period == BillingPeriod.YEARLY:
        return start + relativedelta(years=1)
    return start + relativedelta(months=1)


class MembershipPlan(UUIDPrimaryKeyMixin, BaseModel):
    """
    A purchasable membership plan.

    Prices are in cents. platform_fee_percent overrides the default job
    platform fee for customers holding the plan; premium plans pay none.
    """

    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default="")
    user_type = models.CharField(
        max_length=20,
        choices=PlanUserType.choices,
        db_index=True,
    )
    tier = models.CharField(
        max_length=20,
        choices=PlanTier.choices,
        default=PlanTier.BASIC,
    )
    monthly_price = models.PositiveBigIntegerField(help_text="Monthly price in cents")
    yearly_price = models.PositiveBigIntegerField(help_text="Yearly price in cents")
    stripe_price_id_monthly = models.CharField(max_length=255, blank=True, default="")
    stripe_price_id_yearly = models.CharField(max_length=255, blank=True, default="")
    platform_fee_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Job platform fee for holders (empty uses the default)",
    )
    features = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    display_order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["user_type", "display_order", "monthly_price"]
        verbose_name = "Membership Plan"
        verbose_name_plural = "Membership Plans"

    def __str__(self) -> str:
        return f"{self.name} ({self.user_type}, {self.tier})"

    def price_for(self, billing_period: str) -> int:
        if billing_period == BillingPeriod.YEARLY:
            return self.yearly_price
        return self.monthly_price

    def stripe_price_id_for(self, billing_period: str) -> str:
        if billing_period == BillingPeriod.YEARLY:
            return self.stripe_price_id_yearly
        return self.stripe_price_id_monthly


class MembershipRecordQuerySet(models.QuerySet):
    def with_access(self, now: datetime | None = None):
        """Active or cancelled records whose paid period has not ended."""
        now = now or timezone.now()
        return self.filter(
            status__in=[MembershipStatus.ACTIVE, MembershipStatus.CANCELLED],
            renewal_date__gt=now,
        )

    def current_for(self, user) -> MembershipRecord | None:
        """
        The membership that currently grants the user access.

        An active record wins over a cancelled one still in its paid period.
        """
        records = list(self.with_access().filter(user=user).select_related("plan"))
        for record in records:
            if record.status == MembershipStatus.ACTIVE:
                return record
        return records[0] if records else None

    def due_for_expiry(self, now: datetime):
        return self.filter(
            status__in=[MembershipStatus.ACTIVE, MembershipStatus.CANCELLED],
            renewal_date__lt=now,
        )


class MembershipRecord(UUIDPrimaryKeyMixin, BaseModel):
    """
    A user's membership in a plan.

    Fields:
        user / plan: Holder and current plan (replaced in place on upgrade)
        billing_period / billing_type: Chosen at checkout
        stripe_subscription_id: Present for recurring memberships
        stripe_checkout_session_id: Session that last created or upgraded it
        status: FSM-managed (active, cancelled, expired)
        start_date: First activation, kept across upgrades
        renewal_date: Billing anchor; access ends here unless renewed
        is_auto_renew: Whether the holder wants renewal
        cancelled_at / cancellation_reason: Set by cancel()
        last_invoice_id / last_payment_at: Latest paid invoice
        payment_failed_at: Latest failed invoice (access is kept)
        amount_paid: Cents paid at the latest checkout
        upgrade_history: [{from_plan_id, to_plan_id, upgraded_at,
            amount_paid, session_id, from_session_id}]
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="memberships",
    )
    plan = models.ForeignKey(
        MembershipPlan,
        on_delete=models.PROTECT,
        related_name="memberships",
    )
    billing_period = models.CharField(
        max_length=10,
        choices=BillingPeriod.choices,
        default=BillingPeriod.MONTHLY,
    )
    billing_type = models.CharField(
        max_length=10,
        choices=BillingType.choices,
        default=BillingType.RECURRING,
    )
    stripe_subscription_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe Subscription ID (sub_xxx)",
    )
    stripe_checkout_session_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Checkout Session ID (cs_xxx)",
    )

    status = FSMField(
        default=MembershipStatus.ACTIVE,
        choices=MembershipStatus.choices,
        db_index=True,
        help_text="Current state of the membership (managed by FSM)",
    )

    start_date = models.DateTimeField(default=timezone.now)
    renewal_date = models.DateTimeField(db_index=True)
    is_auto_renew = models.BooleanField(default=False)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True, default="")

    last_invoice_id = models.CharField(max_length=255, blank=True, default="")
    last_payment_at = models.DateTimeField(null=True, blank=True)
    payment_failed_at = models.DateTimeField(null=True, blank=True)
    amount_paid = models.PositiveBigIntegerField(default=0)
    upgrade_history = models.JSONField(default=list, blank=True)

    objects = MembershipRecordQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Membership"
        verbose_name_plural = "Memberships"
        indexes = [
            models.Index(fields=["user", "status"], name="membership_user_status_idx"),
            models.Index(
                fields=["status", "renewal_date"], name="membership_status_renewal_idx"
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(status="active"),
                name="membership_one_active_per_user",
            ),
        ]

    def __str__(self) -> str:
        return f"Membership({self.user_id}, {self.plan_id}, {self.status})"

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(field=status, source=MembershipStatus.ACTIVE, target=MembershipStatus.CANCELLED)
    def cancel(self, reason: str = "") -> None:
        """Stop renewal; access continues until renewal_date."""
        self.cancelled_at = timezone.now()
        self.cancellation_reason = reason[:255]
        self.is_auto_renew = False

    @transition(field=status, source=MembershipStatus.CANCELLED, target=MembershipStatus.ACTIVE)
    def reactivate(self) -> None:
        self.cancelled_at = None
        self.cancellation_reason = ""

    @transition(
        field=status,
        source=[MembershipStatus.ACTIVE, MembershipStatus.CANCELLED],
        target=MembershipStatus.EXPIRED,
    )
    def expire(self) -> None:
        self.is_auto_renew = False

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def period_price(self) -> int:
        return self.plan.price_for(self.billing_period)

    @property
    def currency(self) -> str:
        return settings.PAYMENT_CURRENCY

    def has_access(self, now: datetime | None = None) -> bool:
        now = now or timezone.now()
        return (
            self.status in (MembershipStatus.ACTIVE, MembershipStatus.CANCELLED)
            and self.renewal_date > now
        )

    def has_applied_session(self, session_id: str) -> bool:
        if not session_id:
            return False
        if self.stripe_checkout_session_id == session_id:
            return True
        return any(
            session_id in (entry.get("session_id"), entry.get("from_session_id"))
            for entry in self.upgrade_history
        )
