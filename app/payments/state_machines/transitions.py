"""
Transition table for JobPayment stages.

Every mutating ledger operation consults this module; no other code
compares stages directly.

Stage payments:

    payment type | policy        | source          | target
    -------------+---------------+-----------------+----------------
    deposit      | both          | pending         | deposit_paid
    prestart     | three-stage   | deposit_paid    | pre_start_paid
    completion   | three-stage   | pre_start_paid  | completed
    completion   | two-stage     | deposit_paid    | completed

Refunds are allowed from any stage in REFUNDABLE_STAGES and land on
refunded when the refunded total reaches the captured total, otherwise
partially_refunded.
"""

from __future__ import annotations

from dataclasses import dataclass

from payments.state_machines.states import PaymentStage, PaymentType


@dataclass(frozen=True)
class StageTransition:
    """
    One allowed stage payment.

    Attributes:
        payment_type: Which stage payment this is
        source: Stage the record must be in
        target: Stage after the payment is confirmed
        uses_pre_start: Policy this row applies to (None for both)
    """

    payment_type: str
    source: str
    target: str
    uses_pre_start: bool | None = None

    def applies_to(self, payment_type: str, uses_pre_start: bool) -> bool:
        if self.payment_type != payment_type:
            return False
        return self.uses_pre_start is None or self.uses_pre_start == uses_pre_start


STAGE_TRANSITIONS: tuple[StageTransition, ...] = (
    StageTransition(PaymentType.DEPOSIT, PaymentStage.PENDING, PaymentStage.DEPOSIT_PAID),
    StageTransition(
        PaymentType.PRE_START,
        PaymentStage.DEPOSIT_PAID,
        PaymentStage.PRE_START_PAID,
        uses_pre_start=True,
    ),
    StageTransition(
        PaymentType.COMPLETION,
        PaymentStage.PRE_START_PAID,
        PaymentStage.COMPLETED,
        uses_pre_start=True,
    ),
    StageTransition(
        PaymentType.COMPLETION,
        PaymentStage.DEPOSIT_PAID,
        PaymentStage.COMPLETED,
        uses_pre_start=False,
    ),
)

REFUNDABLE_STAGES = frozenset(
    {
        PaymentStage.DEPOSIT_PAID,
        PaymentStage.PRE_START_PAID,
        PaymentStage.COMPLETED,
        PaymentStage.PARTIALLY_REFUNDED,
    }
)

# Per payment type: (intent id field, paid-at field, amount field)
STAGE_FIELDS: dict[str, tuple[str, str, str]] = {
    PaymentType.DEPOSIT: ("deposit_intent_id", "deposit_paid_at", "deposit_amount"),
    PaymentType.PRE_START: (
        "pre_start_intent_id",
        "pre_start_paid_at",
        "pre_start_amount",
    ),
    PaymentType.COMPLETION: (
        "completion_intent_id",
        "completion_paid_at",
        "completion_amount",
    ),
}


def get_stage_transition(payment_type: str, uses_pre_start: bool) -> StageTransition | None:
    """
    Find the transition for a stage payment under a record's policy.

    Returns None when the payment type does not exist for the policy
    (a pre-start payment on a two-stage record).
    """
    for transition in STAGE_TRANSITIONS:
        if transition.applies_to(payment_type, uses_pre_start):
            return transition
    return None


def is_refundable(stage: str) -> bool:
    return stage in REFUNDABLE_STAGES


def refund_target_stage(captured_amount: int, refunded_amount: int) -> str:
    """Stage after a refund brings the refunded total to refunded_amount."""
    if refunded_amount >= captured_amount:
        return PaymentStage.REFUNDED
    return PaymentStage.PARTIALLY_REFUNDED


def stage_fields(payment_type: str) -> tuple[str, str, str]:
    """Return (intent_field, paid_at_field, amount_field) for a payment type."""
    return STAGE_FIELDS[payment_type]
