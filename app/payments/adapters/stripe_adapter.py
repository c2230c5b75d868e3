"""
Stripe API adapter for payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls go through this adapter to
ensure consistent error handling, timeouts, idempotency and observability.

Features:
- Configurable timeout on all API calls, no SDK-level retries
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys on every mutating call

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=1500,
            currency="usd",
            customer_id="cus_123",
            metadata={"job_payment_id": str(job_payment.id)},
            idempotency_key=IdempotencyKeyGenerator.generate(
                "job_deposit", job_payment.id
            ),
        )
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
    WebhookSignatureError,
)

R = TypeVar("R")

# Timeout of the shared Stripe HTTP client, None until it is built
_http_client_timeout: float | None = None


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Payment amount in smallest currency unit
        currency: ISO 4217 currency code
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs to attach to the PaymentIntent
        customer_id: Optional Stripe Customer ID
        description: Optional description shown in the dashboard
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    customer_id: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class RefundResult:
    """Result from Stripe Refund operations."""

    id: str
    amount_cents: int
    currency: str
    status: str
    payment_intent_id: str
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class CreateCustomerParams:
    """Parameters for creating a Stripe Customer."""

    email: str
    idempotency_key: str
    name: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class CustomerResult:
    """Result from Stripe Customer operations."""

    id: str
    email: str | None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConnectAccountResult:
    """
    Result from Stripe Connect account operations.

    Attributes:
        id: Account ID (acct_xxx)
        charges_enabled / payouts_enabled / details_submitted: Stripe flags
        disabled_reason: requirements.disabled_reason (None when enabled)
    """

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    disabled_reason: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class LinkResult:
    """Result from AccountLink and LoginLink creation."""

    url: str
    expires_at: int | None = None


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a Stripe Checkout Session.

    Attributes:
        mode: "subscription" or "payment"
        line_items: Stripe line items (price id or inline price_data)
        success_url / cancel_url: Redirect targets
        idempotency_key: Unique key for idempotent creation
        metadata: Session metadata (also copied to the subscription)
        customer_id: Existing Stripe Customer, if any
        customer_email: Prefill when no customer exists
    """

    mode: str
    line_items: list[dict[str, Any]]
    success_url: str
    cancel_url: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    customer_id: str | None = None
    customer_email: str | None = None

    def __post_init__(self) -> None:
        if self.mode not in ("subscription", "payment"):
            raise ValueError("mode must be 'subscription' or 'payment'")
        if not self.line_items:
            raise ValueError("line_items is required")


@dataclass
class CheckoutSessionResult:
    """Result from Checkout Session creation."""

    id: str
    url: str
    mode: str
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class SubscriptionResult:
    """Result from Stripe Subscription operations."""

    id: str
    status: str
    cancel_at_period_end: bool = False
    current_period_end: int | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The hash is salted with SECRET_KEY; the structured prefix aids
    correlation with Stripe's request logs.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="job_deposit",
            entity_id=job_payment.id,
            attempt=1,
        )
        # "job_deposit:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int | str = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    Check if a Stripe error is transient.

    Nothing retries inside a request; callers use this to decide what to
    tell the client.
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


def _requirements_disabled_reason(account: Any) -> str | None:
    requirements = getattr(account, "requirements", None)
    if not requirements:
        return None
    return requirements.get("disabled_reason")


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods; no instance state is maintained.
    Services receive the adapter class through their constructor so tests
    can substitute a mock.

    Usage:
        result = StripeAdapter.create_payment_intent(params)
        result = StripeAdapter.create_refund(pi_id, idem_key, amount_cents=500)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """
        Configure the Stripe client with API key, timeout and no retries.

        The HTTP client is built once and rebuilt only when the configured
        timeout changes.
        """
        global _http_client_timeout
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = 0
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        if _http_client_timeout != timeout:
            stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
            _http_client_timeout = timeout

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _execute(
        cls,
        log_context: dict[str, Any],
        call: Callable[[], Any],
        on_success: Callable[[Any], R],
        result_context: Callable[[Any], dict[str, Any]] | None = None,
    ) -> R:
        """
        Run one Stripe call with timing, logging and error translation.

        Args:
            log_context: Identifiers logged with every message
            call: Zero-argument callable performing the SDK request
            on_success: Converts the SDK object into a result dataclass
            result_context: Extra identifiers to log on success

        Raises:
            StripeError subclass for any SDK failure
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            response = call()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                **(result_context(response) if result_context else {}),
                "duration_ms": duration_ms,
            },
        )
        return on_success(response)

    # =========================================================================
    # Payment Intents & Refunds
    # =========================================================================

    @classmethod
    def create_payment_intent(
        cls,
        params: CreatePaymentIntentParams,
        trace_id: str | None = None,
    ) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent confirmed later by the client.

        Returns:
            PaymentIntentResult including client_secret

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        log_context = {
            "operation": "create_payment_intent",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
            "trace_id": trace_id,
        }

        def _call():
            create_params: dict[str, Any] = {
                "amount": params.amount_cents,
                "currency": params.currency,
                "metadata": params.metadata,
                "automatic_payment_methods": {"enabled": True},
            }
            if params.customer_id:
                create_params["customer"] = params.customer_id
            if params.description:
                create_params["description"] = params.description
            return stripe.PaymentIntent.create(
                idempotency_key=params.idempotency_key,
                **create_params,
            )

        return cls._execute(
            log_context,
            _call,
            cls._to_payment_intent_result,
            lambda intent: {"payment_intent_id": intent.id, "status": intent.status},
        )

    @classmethod
    def create_refund(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        amount_cents: int | None = None,
        metadata: dict[str, str] | None = None,
        trace_id: str | None = None,
    ) -> RefundResult:
        """
        Refund part or all of a PaymentIntent.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
            idempotency_key: Unique key for idempotent refund
            amount_cents: Amount to refund (None for full refund)
            metadata: Optional metadata dict

        Raises:
            StripeInvalidRequestError: Refund not possible
        """
        log_context = {
            "operation": "create_refund",
            "payment_intent_id": payment_intent_id,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
            "trace_id": trace_id,
        }

        def _call():
            refund_params: dict[str, Any] = {
                "payment_intent": payment_intent_id,
                "metadata": metadata or {},
            }
            if amount_cents is not None:
                refund_params["amount"] = amount_cents
            return stripe.Refund.create(
                idempotency_key=idempotency_key,
                **refund_params,
            )

        def _result(refund) -> RefundResult:
            return RefundResult(
                id=refund.id,
                amount_cents=refund.amount,
                currency=refund.currency,
                status=refund.status,
                payment_intent_id=refund.payment_intent,
                metadata=dict(refund.metadata or {}),
                raw_response=refund.to_dict(),
            )

        return cls._execute(
            log_context,
            _call,
            _result,
            lambda refund: {"refund_id": refund.id, "status": refund.status},
        )

    # =========================================================================
    # Customers
    # =========================================================================

    @classmethod
    def create_customer(
        cls,
        params: CreateCustomerParams,
        trace_id: str | None = None,
    ) -> CustomerResult:
        """Create a Stripe Customer."""
        log_context = {
            "operation": "create_customer",
            "idempotency_key": params.idempotency_key,
            "trace_id": trace_id,
        }

        def _call():
            create_params: dict[str, Any] = {
                "email": params.email,
                "metadata": params.metadata,
            }
            if params.name:
                create_params["name"] = params.name
            return stripe.Customer.create(
                idempotency_key=params.idempotency_key,
                **create_params,
            )

        def _result(customer) -> CustomerResult:
            return CustomerResult(
                id=customer.id,
                email=customer.email,
                metadata=dict(customer.metadata or {}),
                raw_response=customer.to_dict(),
            )

        return cls._execute(
            log_context,
            _call,
            _result,
            lambda customer: {"customer_id": customer.id},
        )

    # =========================================================================
    # Connect
    # =========================================================================

    @classmethod
    def create_connect_account(
        cls,
        email: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
        trace_id: str | None = None,
    ) -> ConnectAccountResult:
        """Create an Express connected account able to receive transfers."""
        log_context = {
            "operation": "create_connect_account",
            "idempotency_key": idempotency_key,
            "trace_id": trace_id,
        }

        def _call():
            return stripe.Account.create(
                type="express",
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            )

        return cls._execute(
            log_context,
            _call,
            cls._to_account_result,
            lambda account: {"account_id": account.id},
        )

    @classmethod
    def retrieve_account(
        cls,
        account_id: str,
        trace_id: str | None = None,
    ) -> ConnectAccountResult:
        """Retrieve a connected account's current capability flags."""
        log_context = {
            "operation": "retrieve_account",
            "account_id": account_id,
            "trace_id": trace_id,
        }
        return cls._execute(
            log_context,
            lambda: stripe.Account.retrieve(account_id),
            cls._to_account_result,
            lambda account: {
                "charges_enabled": account.charges_enabled,
                "payouts_enabled": account.payouts_enabled,
            },
        )

    @classmethod
    def create_account_link(
        cls,
        account_id: str,
        refresh_url: str,
        return_url: str,
        trace_id: str | None = None,
    ) -> LinkResult:
        """Create a single-use onboarding link for a connected account."""
        log_context = {
            "operation": "create_account_link",
            "account_id": account_id,
            "trace_id": trace_id,
        }
        return cls._execute(
            log_context,
            lambda: stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            ),
            lambda link: LinkResult(url=link.url, expires_at=link.expires_at),
        )

    @classmethod
    def create_login_link(
        cls,
        account_id: str,
        trace_id: str | None = None,
    ) -> LinkResult:
        """Create an Express dashboard login link."""
        log_context = {
            "operation": "create_login_link",
            "account_id": account_id,
            "trace_id": trace_id,
        }
        return cls._execute(
            log_context,
            lambda: stripe.Account.create_login_link(account_id),
            lambda link: LinkResult(url=link.url),
        )

    # =========================================================================
    # Checkout & Subscriptions
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        params: CreateCheckoutSessionParams,
        trace_id: str | None = None,
    ) -> CheckoutSessionResult:
        """
        Create a hosted Checkout Session.

        In subscription mode the metadata is also attached to the created
        subscription so later invoice and subscription events can be
        correlated.
        """
        log_context = {
            "operation": "create_checkout_session",
            "mode": params.mode,
            "idempotency_key": params.idempotency_key,
            "trace_id": trace_id,
        }

        def _call():
            session_params: dict[str, Any] = {
                "mode": params.mode,
                "line_items": params.line_items,
                "success_url": params.success_url,
                "cancel_url": params.cancel_url,
                "metadata": params.metadata,
            }
            if params.customer_id:
                session_params["customer"] = params.customer_id
            elif params.customer_email:
                session_params["customer_email"] = params.customer_email
            if params.mode == "subscription":
                session_params["subscription_data"] = {"metadata": params.metadata}
            return stripe.checkout.Session.create(
                idempotency_key=params.idempotency_key,
                **session_params,
            )

        def _result(session) -> CheckoutSessionResult:
            return CheckoutSessionResult(
                id=session.id,
                url=session.url,
                mode=session.mode,
                metadata=dict(session.metadata or {}),
                raw_response=session.to_dict(),
            )

        return cls._execute(
            log_context,
            _call,
            _result,
            lambda session: {"checkout_session_id": session.id},
        )

    @classmethod
    def cancel_subscription_at_period_end(
        cls,
        subscription_id: str,
        trace_id: str | None = None,
    ) -> SubscriptionResult:
        """Stop renewal; access continues until the current period ends."""
        log_context = {
            "operation": "cancel_subscription_at_period_end",
            "subscription_id": subscription_id,
            "trace_id": trace_id,
        }

        def _result(subscription) -> SubscriptionResult:
            return SubscriptionResult(
                id=subscription.id,
                status=subscription.status,
                cancel_at_period_end=bool(subscription.cancel_at_period_end),
                current_period_end=getattr(subscription, "current_period_end", None),
                raw_response=subscription.to_dict(),
            )

        return cls._execute(
            log_context,
            lambda: stripe.Subscription.modify(
                subscription_id,
                cancel_at_period_end=True,
            ),
            _result,
            lambda subscription: {"status": subscription.status},
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            WebhookSignatureError: Missing, malformed or invalid signature
        """
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(
                "Invalid webhook signature",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise WebhookSignatureError(
                "Invalid webhook payload",
                details={"error": str(e)},
            ) from e
        return event.to_dict()

    # =========================================================================
    # Result Builders
    # =========================================================================

    @staticmethod
    def _to_payment_intent_result(intent) -> PaymentIntentResult:
        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=intent.client_secret,
            metadata=dict(intent.metadata or {}),
            raw_response=intent.to_dict(),
        )

    @staticmethod
    def _to_account_result(account) -> ConnectAccountResult:
        return ConnectAccountResult(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
            details_submitted=bool(account.details_submitted),
            disabled_reason=_requirements_disabled_reason(account),
            raw_response=account.to_dict(),
        )

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInsufficientFundsError: Insufficient funds
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request or authentication
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable or unknown failure
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )

            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                    decline_code=decline_code,
                ) from error

            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )

            if "account" in str(error).lower():
                raise StripeInvalidAccountError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                ) from error

            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower():
                logger.warning("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        ) from error
