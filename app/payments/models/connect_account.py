"""
ConnectAccount model for Stripe Connect integration.

Each contractor has at most one Express account. The status fields mirror
Stripe's account object and are refreshed on status queries and
account.updated webhooks.

Usage:
    from payments.models import ConnectAccount

    account = ConnectAccount.objects.filter(contractor=user).first()
    if account and account.is_ready_for_payouts:
        ...
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import ConnectAccountStatus


class ConnectAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    A contractor's Stripe Connect account.

    Fields:
        contractor: Owning contractor (one account each)
        stripe_account_id: Stripe Account ID (acct_xxx)
        status: Mapped status (pending, active, rejected, disabled)
        charges_enabled / payouts_enabled / details_submitted: Stripe flags
        disabled_reason: requirements.disabled_reason from Stripe
        last_synced_at: Last time the flags were refreshed from Stripe

    Note:
        contractor uses PROTECT so accounts holding a gateway reference are
        never removed implicitly.
    """

    contractor = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="connect_account",
        help_text="Contractor this account belongs to",
    )
    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Account ID (acct_xxx)",
    )
    status = models.CharField(
        max_length=20,
        choices=ConnectAccountStatus.choices,
        default=ConnectAccountStatus.PENDING,
        db_index=True,
    )
    charges_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)
    details_submitted = models.BooleanField(default=False)
    disabled_reason = models.CharField(max_length=255, blank=True, default="")
    last_synced_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connect Account"
        verbose_name_plural = "Connect Accounts"

    def __str__(self) -> str:
        return f"ConnectAccount({self.stripe_account_id}, {self.status})"

    @property
    def is_ready_for_payouts(self) -> bool:
        return self.status == ConnectAccountStatus.ACTIVE and self.payouts_enabled
