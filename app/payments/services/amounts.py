"""
Money arithmetic for job payments.

All amounts are integer cents. Percentages are applied with Decimal and
rounded half-up to the nearest cent; the last stage absorbs the rounding
remainder so the stages always sum to the total.

Usage:
    from payments.services.amounts import split_job_amount

    split = split_job_amount(10_000, uses_pre_start=True)
    # StageSplit(deposit=1500, pre_start=2500, completion=6000)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class StageSplit:
    """Stage amounts for one job payment (cents)."""

    deposit: int
    pre_start: int
    completion: int

    @property
    def total(self) -> int:
        return self.deposit + self.pre_start + self.completion


@dataclass(frozen=True)
class RefundFees:
    """
    Fee breakdown recorded with a refund.

    Reporting only: Stripe refunds the full requested amount.
    """

    admin_fee: int
    stripe_fee: int
    net_amount: int


def percent_of(amount: int, percent: Decimal | int | str) -> int:
    """Return round_half_up(amount * percent / 100) in cents."""
    value = Decimal(amount) * Decimal(str(percent)) / HUNDRED
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def split_job_amount(total_amount: int, uses_pre_start: bool = False) -> StageSplit:
    """
    Split a job total into stage amounts.

    Two-stage: deposit, then the remainder on completion.
    Three-stage: deposit, pre-start, then the remainder on completion.
    """
    deposit = percent_of(total_amount, settings.JOB_DEPOSIT_PERCENT)
    pre_start = (
        percent_of(total_amount, settings.JOB_PRE_START_PERCENT) if uses_pre_start else 0
    )
    return StageSplit(
        deposit=deposit,
        pre_start=pre_start,
        completion=total_amount - deposit - pre_start,
    )


def calculate_platform_fee(total_amount: int, fee_percent: Decimal) -> int:
    return percent_of(total_amount, fee_percent)


def calculate_refund_fees(amount: int) -> RefundFees:
    admin_fee = percent_of(amount, settings.REFUND_ADMIN_FEE_PERCENT)
    stripe_fee = percent_of(amount, settings.REFUND_STRIPE_FEE_PERCENT)
    return RefundFees(
        admin_fee=admin_fee,
        stripe_fee=stripe_fee,
        net_amount=amount - admin_fee - stripe_fee,
    )
