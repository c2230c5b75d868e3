"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Job payment / connect account lookup failures
    ├── PaymentValidationError - Amount, party and refund-limit violations
    ├── WebhookSignatureError - Webhook authenticity failures
    └── PaymentProcessingError - Gateway failures
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInsufficientFundsError - Insufficient funds (permanent)
            ├── StripeInvalidAccountError - Invalid Stripe account (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient)
            ├── StripeAPIUnavailableError - API unavailable (transient)
            └── StripeTimeoutError - Request timeout (transient)

    InvalidStageTransitionError - Ledger stage does not allow the operation
                                  (inherits ConflictError)

Gateway errors are never retried inside a request: is_retryable tells the
client (or Stripe, for webhooks) whether trying again can succeed.

Usage:
    from payments.exceptions import InvalidStageTransitionError

    raise InvalidStageTransitionError(
        "Completion payment requires stage 'deposit_paid'",
        details={"current_stage": "pending", "required_stage": "deposit_paid"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import status

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for all payment operations."""

    default_error_code: str = "PAYMENT_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment entity cannot be found.

    Example:
        job_payment = JobPayment.objects.filter(id=job_payment_id).first()
        if not job_payment:
            raise PaymentNotFoundError(
                "Job payment not found",
                details={"job_payment_id": str(job_payment_id)},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    status_code: int = status.HTTP_404_NOT_FOUND


class PaymentValidationError(PaymentError):
    """
    Raised when payment validation fails.

    Use for:
    - Non-positive or non-integer amounts
    - Customer paying themselves
    - Refunds exceeding the refundable balance
    - Refunds against an intent that was never captured
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class WebhookSignatureError(PaymentError):
    """Raised when a webhook payload fails signature verification."""

    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"


class PaymentProcessingError(PaymentError):
    """Raised when the payment gateway fails to process a request."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"
    status_code: int = status.HTTP_402_PAYMENT_REQUIRED


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the same call may succeed later
    """

    default_error_code: str = "STRIPE_ERROR"
    status_code: int = status.HTTP_502_BAD_GATEWAY
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    Card was declined by the issuing bank.

    Common decline codes: generic_decline, lost_card, stolen_card,
    expired_card, incorrect_cvc.
    """

    default_error_code: str = "CARD_DECLINED"
    status_code: int = status.HTTP_402_PAYMENT_REQUIRED


class StripeInsufficientFundsError(StripeError):
    """Insufficient funds on the payment method."""

    default_error_code: str = "INSUFFICIENT_FUNDS"
    status_code: int = status.HTTP_402_PAYMENT_REQUIRED


class StripeInvalidAccountError(StripeError):
    """
    Invalid Stripe Connect account.

    Raised when the connected account is missing, restricted or cannot be
    used for the requested operation.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"
    status_code: int = status.HTTP_400_BAD_REQUEST


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Usually a bug on our side (bad intent id, refund above captured
    amount). Also used for failed authentication against the API.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    status_code: int = status.HTTP_400_BAD_REQUEST


# -----------------------------------------------------------------------------
# Transient Errors
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    status_code: int = status.HTTP_429_TOO_MANY_REQUESTS
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Stripe API is unreachable or returned a server error."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    status_code: int = status.HTTP_502_BAD_GATEWAY
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The operation may have succeeded on Stripe's side. Every mutating call
    carries an idempotency key, so repeating it is safe.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    status_code: int = status.HTTP_504_GATEWAY_TIMEOUT
    is_retryable: bool = True


# =============================================================================
# Ledger State Exceptions
# =============================================================================


class InvalidStageTransitionError(ConflictError):
    """
    Raised when the ledger stage does not allow the requested operation.

    Raised before any gateway call, so a rejected request leaves both the
    ledger and Stripe untouched.

    Attributes:
        details: current_stage, the required source stage(s) and the
            payment type or operation
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


__all__ = [
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "WebhookSignatureError",
    "PaymentProcessingError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    "InvalidStageTransitionError",
]
