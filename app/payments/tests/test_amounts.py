"""
Tests for job payment money arithmetic.
"""

from decimal import Decimal

import pytest

from payments.services.amounts import (
    calculate_platform_fee,
    calculate_refund_fees,
    percent_of,
    split_job_amount,
)


class TestPercentOf:
    def test_rounds_half_up(self):
        """Should round half a cent up."""
        # 15% of 10 cents is 1.5 cents
        assert percent_of(10, 15) == 2

    def test_rounds_down_below_half(self):
        assert percent_of(3, 15) == 0

    def test_accepts_decimal_percent(self):
        assert percent_of(10_000, Decimal("2.5")) == 250


class TestSplitJobAmount:
    """Tests for the stage split of a job total."""

    def test_two_stage_split(self):
        """Should take 15% as deposit and the rest on completion."""
        split = split_job_amount(100_000)

        assert split.deposit == 15_000
        assert split.pre_start == 0
        assert split.completion == 85_000

    def test_three_stage_split(self):
        """Should add a 25% pre-start payment when enabled."""
        split = split_job_amount(100_000, uses_pre_start=True)

        assert split.deposit == 15_000
        assert split.pre_start == 25_000
        assert split.completion == 60_000

    @pytest.mark.parametrize("total", [1, 2, 3, 7, 99, 333, 1001, 123_457, 9_999_999])
    @pytest.mark.parametrize("uses_pre_start", [False, True])
    def test_stages_always_sum_to_total(self, total, uses_pre_start):
        """Should never lose or add a cent to rounding."""
        split = split_job_amount(total, uses_pre_start=uses_pre_start)

        assert split.total == total
        assert split.deposit == percent_of(total, 15)
        assert split.completion >= 0

    def test_single_cent_job(self):
        """Should put a one-cent job entirely on completion."""
        split = split_job_amount(1)

        assert split.deposit == 0
        assert split.completion == 1

    def test_uses_configured_percentages(self, settings):
        settings.JOB_DEPOSIT_PERCENT = 20
        settings.JOB_PRE_START_PERCENT = 30

        split = split_job_amount(1_000, uses_pre_start=True)

        assert (split.deposit, split.pre_start, split.completion) == (200, 300, 500)


class TestFees:
    def test_platform_fee(self):
        assert calculate_platform_fee(100_000, Decimal("1")) == 1_000

    def test_zero_platform_fee(self):
        assert calculate_platform_fee(100_000, Decimal("0")) == 0

    def test_refund_fees(self):
        """Should retain 7% admin and 3% Stripe fees for reporting."""
        fees = calculate_refund_fees(10_000)

        assert fees.admin_fee == 700
        assert fees.stripe_fee == 300
        assert fees.net_amount == 9_000
