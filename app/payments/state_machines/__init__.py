"""
State enums and the stage transition table for payment models.
"""

from payments.state_machines.states import (
    ConnectAccountStatus,
    PaymentStage,
    PaymentType,
    WebhookEventStatus,
)
from payments.state_machines.transitions import (
    REFUNDABLE_STAGES,
    STAGE_TRANSITIONS,
    StageTransition,
    get_stage_transition,
    is_refundable,
    refund_target_stage,
    stage_fields,
)

__all__ = [
    "ConnectAccountStatus",
    "PaymentStage",
    "PaymentType",
    "REFUNDABLE_STAGES",
    "STAGE_TRANSITIONS",
    "StageTransition",
    "WebhookEventStatus",
    "get_stage_transition",
    "is_refundable",
    "refund_target_stage",
    "stage_fields",
]
