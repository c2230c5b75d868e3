"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter to ensure consistent error
handling, timeouts, idempotency and observability.

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=5000,
            currency="usd",
            idempotency_key="job_deposit:123:1:abcd1234",
        )
    )
"""

from payments.adapters.stripe_adapter import (
    CheckoutSessionResult,
    ConnectAccountResult,
    CreateCheckoutSessionParams,
    CreateCustomerParams,
    CreatePaymentIntentParams,
    CustomerResult,
    IdempotencyKeyGenerator,
    LinkResult,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
    SubscriptionResult,
    is_retryable_stripe_error,
)

__all__ = [
    "CheckoutSessionResult",
    "ConnectAccountResult",
    "CreateCheckoutSessionParams",
    "CreateCustomerParams",
    "CreatePaymentIntentParams",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "LinkResult",
    "PaymentIntentResult",
    "RefundResult",
    "StripeAdapter",
    "SubscriptionResult",
    "is_retryable_stripe_error",
]
