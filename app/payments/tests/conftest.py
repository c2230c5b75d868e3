"""
Pytest fixtures for payment tests.

Fixtures provide job payments at each ledger stage and a Stripe adapter
double whose calls return realistic result objects.

Usage:
    def test_deposit(orchestrator, pending_job_payment, stripe_adapter):
        intent = orchestrator.process_deposit_payment(
            pending_job_payment.id, pending_job_payment.customer
        )
        assert stripe_adapter.create_payment_intent.called
"""

import itertools
from unittest.mock import MagicMock

import pytest

from payments.adapters import (
    ConnectAccountResult,
    CustomerResult,
    LinkResult,
    PaymentIntentResult,
    RefundResult,
)
from payments.services import (
    ConnectAccountService,
    JobPaymentOrchestrator,
)
from payments.tests.factories import ConnectAccountFactory, JobPaymentFactory


# =============================================================================
# Stripe Adapter Double
# =============================================================================


@pytest.fixture
def stripe_adapter():
    """
    StripeAdapter stand-in returning a new intent / refund id per call.

    Override a method's return_value or side_effect in the test for
    anything else.
    """
    adapter = MagicMock(name="StripeAdapter")
    intent_ids = itertools.count(1)
    refund_ids = itertools.count(1)

    def create_payment_intent(params, trace_id=None):
        intent_id = f"pi_new_{next(intent_ids)}"
        return PaymentIntentResult(
            id=intent_id,
            status="requires_payment_method",
            amount_cents=params.amount_cents,
            currency=params.currency,
            client_secret=f"{intent_id}_secret_abc",
            metadata=params.metadata,
        )

    def create_refund(payment_intent_id, idempotency_key, amount_cents=None, metadata=None, trace_id=None):
        return RefundResult(
            id=f"re_new_{next(refund_ids)}",
            amount_cents=amount_cents,
            currency="usd",
            status="succeeded",
            payment_intent_id=payment_intent_id,
            metadata=metadata or {},
        )

    adapter.create_payment_intent.side_effect = create_payment_intent
    adapter.create_refund.side_effect = create_refund
    adapter.create_customer.return_value = CustomerResult(id="cus_test_123", email=None)
    adapter.create_connect_account.return_value = ConnectAccountResult(id="acct_new_123")
    adapter.retrieve_account.return_value = ConnectAccountResult(id="acct_new_123")
    adapter.create_account_link.return_value = LinkResult(
        url="https://connect.stripe.com/setup/e/acct_new_123/abc"
    )
    adapter.create_login_link.return_value = LinkResult(
        url="https://connect.stripe.com/express/acct_new_123/xyz"
    )
    return adapter


@pytest.fixture
def orchestrator(stripe_adapter):
    return JobPaymentOrchestrator(stripe_adapter=stripe_adapter)


@pytest.fixture
def connect_service(stripe_adapter):
    return ConnectAccountService(stripe_adapter=stripe_adapter)


# =============================================================================
# Job Payment Fixtures
# =============================================================================


@pytest.fixture
def pending_job_payment(customer, contractor):
    """Two-stage job payment awaiting its deposit."""
    return JobPaymentFactory(customer=customer, contractor=contractor)


@pytest.fixture
def three_stage_job_payment(customer, contractor):
    """Three-stage job payment awaiting its deposit."""
    return JobPaymentFactory(customer=customer, contractor=contractor, uses_pre_start=True)


@pytest.fixture
def deposit_paid_job_payment(customer, contractor):
    """Two-stage job payment with a confirmed deposit."""
    return JobPaymentFactory(customer=customer, contractor=contractor, deposit_paid=True)


@pytest.fixture
def completed_job_payment(orchestrator, deposit_paid_job_payment):
    """Two-stage job payment confirmed through completion."""
    intent = orchestrator.process_completion_payment(
        deposit_paid_job_payment.id, deposit_paid_job_payment.customer
    )
    return orchestrator.confirm_stage_payment(intent.payment_intent_id).job_payment


@pytest.fixture
def connect_account(contractor):
    return ConnectAccountFactory(contractor=contractor)
