"""
Tests for the JobPayment stage transition table.
"""

import pytest

from payments.state_machines import (
    PaymentStage,
    PaymentType,
    get_stage_transition,
    is_refundable,
    refund_target_stage,
    stage_fields,
)


class TestGetStageTransition:
    """Tests for stage payment lookup per policy."""

    @pytest.mark.parametrize("uses_pre_start", [False, True])
    def test_deposit_from_pending(self, uses_pre_start):
        transition = get_stage_transition(PaymentType.DEPOSIT, uses_pre_start)

        assert transition.source == PaymentStage.PENDING
        assert transition.target == PaymentStage.DEPOSIT_PAID

    def test_pre_start_only_for_three_stage(self):
        """Should have no pre-start payment on two-stage jobs."""
        assert get_stage_transition(PaymentType.PRE_START, False) is None

        transition = get_stage_transition(PaymentType.PRE_START, True)
        assert transition.source == PaymentStage.DEPOSIT_PAID
        assert transition.target == PaymentStage.PRE_START_PAID

    def test_completion_source_depends_on_policy(self):
        """Should require deposit_paid (two-stage) or pre_start_paid (three-stage)."""
        two_stage = get_stage_transition(PaymentType.COMPLETION, False)
        three_stage = get_stage_transition(PaymentType.COMPLETION, True)

        assert two_stage.source == PaymentStage.DEPOSIT_PAID
        assert three_stage.source == PaymentStage.PRE_START_PAID
        assert two_stage.target == three_stage.target == PaymentStage.COMPLETED


class TestRefundRules:
    @pytest.mark.parametrize(
        "stage",
        [
            PaymentStage.DEPOSIT_PAID,
            PaymentStage.PRE_START_PAID,
            PaymentStage.COMPLETED,
            PaymentStage.PARTIALLY_REFUNDED,
        ],
    )
    def test_refundable_stages(self, stage):
        assert is_refundable(stage)

    @pytest.mark.parametrize("stage", [PaymentStage.PENDING, PaymentStage.REFUNDED])
    def test_not_refundable_stages(self, stage):
        assert not is_refundable(stage)

    def test_partial_refund_target(self):
        assert refund_target_stage(15_000, 5_000) == PaymentStage.PARTIALLY_REFUNDED

    def test_full_refund_target(self):
        """Should land on refunded when everything captured is refunded."""
        assert refund_target_stage(15_000, 15_000) == PaymentStage.REFUNDED


def test_stage_fields():
    assert stage_fields(PaymentType.PRE_START) == (
        "pre_start_intent_id",
        "pre_start_paid_at",
        "pre_start_amount",
    )
