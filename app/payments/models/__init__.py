"""
Payment domain models.

- JobPayment: Staged escrow ledger entry for one accepted bid
- JobPaymentRefund: Refund rows against a JobPayment
- ConnectAccount: Contractor Stripe Connect accounts
- WebhookEvent: Durable webhook dedup store
"""

from payments.models.connect_account import ConnectAccount
from payments.models.job_payment import JobPayment, JobPaymentRefund
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "ConnectAccount",
    "JobPayment",
    "JobPaymentRefund",
    "WebhookEvent",
]
