"""
Payment services.

This module provides:
- JobPaymentOrchestrator: Staged job payments, confirmations and refunds
- ConnectAccountService: Contractor Connect onboarding and status
- PaymentHistoryService: History, detail and stats queries
- StripeCustomerService: Stripe Customer get-or-create

Usage:
    from payments.services import JobPaymentOrchestrator

    orchestrator = JobPaymentOrchestrator()
    job_payment = orchestrator.create_job_payment_record(
        job_request_id=job_request_id,
        customer=request.user,
        contractor=contractor,
        bid_id=bid_id,
        total_amount=100_000,
    )
"""

from payments.services.connect_account_service import (
    ConnectAccountService,
    ConnectOnboarding,
    ConnectStatus,
    map_account_status,
)
from payments.services.customer_service import StripeCustomerService
from payments.services.job_payment_orchestrator import (
    JobPaymentOrchestrator,
    RefundOutcome,
    StageConfirmation,
    StagePaymentIntent,
)
from payments.services.payment_history_service import PaymentHistoryService

__all__ = [
    "ConnectAccountService",
    "ConnectOnboarding",
    "ConnectStatus",
    "JobPaymentOrchestrator",
    "PaymentHistoryService",
    "RefundOutcome",
    "StageConfirmation",
    "StagePaymentIntent",
    "StripeCustomerService",
    "map_account_status",
]
