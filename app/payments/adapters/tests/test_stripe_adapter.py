"""
Tests for Stripe adapter.

Tests cover:
- Idempotency key generation
- Error translation for each exception type
- Successful API operations
- Webhook signature verification
- Client configuration
"""

import uuid

import pytest
import stripe
from django.test import override_settings

from payments.adapters import (
    CreateCheckoutSessionParams,
    CreateCustomerParams,
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
    is_retryable_stripe_error,
)
from payments.adapters.tests.conftest import MockStripeObject
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
    WebhookSignatureError,
)


def _intent_params(**overrides) -> CreatePaymentIntentParams:
    params = {
        "amount_cents": 1500,
        "currency": "usd",
        "idempotency_key": "test-key",
    }
    params.update(overrides)
    return CreatePaymentIntentParams(**params)


# =============================================================================
# Parameter Validation Tests
# =============================================================================


class TestCreatePaymentIntentParams:
    """Tests for CreatePaymentIntentParams validation."""

    def test_valid_params(self):
        params = _intent_params(metadata={"job_payment_id": "abc"})

        assert params.amount_cents == 1500
        assert params.metadata == {"job_payment_id": "abc"}
        assert params.customer_id is None

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError, match="amount_cents must be positive"):
            _intent_params(amount_cents=0)

    def test_idempotency_key_required(self):
        with pytest.raises(ValueError, match="idempotency_key is required"):
            _intent_params(idempotency_key="")

    def test_currency_required(self):
        with pytest.raises(ValueError, match="currency is required"):
            _intent_params(currency="")


class TestCreateCheckoutSessionParams:
    """Tests for CreateCheckoutSessionParams validation."""

    def test_mode_must_be_known(self):
        with pytest.raises(ValueError, match="mode"):
            CreateCheckoutSessionParams(
                mode="setup",
                line_items=[{"price": "price_1", "quantity": 1}],
                success_url="https://localhost/success",
                cancel_url="https://localhost/cancel",
                idempotency_key="key",
            )

    def test_line_items_required(self):
        with pytest.raises(ValueError, match="line_items"):
            CreateCheckoutSessionParams(
                mode="payment",
                line_items=[],
                success_url="https://localhost/success",
                cancel_url="https://localhost/cancel",
                idempotency_key="key",
            )


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    """Tests for IdempotencyKeyGenerator."""

    def test_generate_key_format(self):
        entity_id = uuid.uuid4()

        key = IdempotencyKeyGenerator.generate("job_deposit", entity_id, attempt=1)

        parts = key.split(":")
        assert parts[0] == "job_deposit"
        assert parts[1] == str(entity_id)
        assert parts[2] == "1"
        assert len(parts[3]) == 8

    def test_same_inputs_produce_same_key(self):
        entity_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.generate(
            "job_refund", entity_id
        ) == IdempotencyKeyGenerator.generate("job_refund", entity_id)

    def test_different_attempts_produce_different_keys(self):
        entity_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.generate(
            "job_deposit", entity_id, attempt=1
        ) != IdempotencyKeyGenerator.generate("job_deposit", entity_id, attempt=2)


class TestIsRetryableStripeError:
    """Tests for is_retryable_stripe_error helper."""

    def test_retryable_errors(self):
        assert is_retryable_stripe_error(StripeRateLimitError("x"))
        assert is_retryable_stripe_error(StripeAPIUnavailableError("x"))
        assert is_retryable_stripe_error(StripeTimeoutError("x"))

    def test_non_retryable_errors(self):
        assert not is_retryable_stripe_error(StripeCardDeclinedError("x"))
        assert not is_retryable_stripe_error(StripeInvalidRequestError("x"))

    def test_non_stripe_errors(self):
        assert not is_retryable_stripe_error(ValueError("x"))


# =============================================================================
# Error Translation Tests
# =============================================================================


class TestStripeAdapterErrorTranslation:
    """Tests for Stripe error translation to domain exceptions."""

    def test_card_declined_error(self, mock_stripe_payment_intent, card_error):
        mock_stripe_payment_intent.create.side_effect = card_error()

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.decline_code == "generic_decline"
        assert exc_info.value.is_retryable is False

    def test_insufficient_funds_error(self, mock_stripe_payment_intent, card_error):
        mock_stripe_payment_intent.create.side_effect = card_error(
            message="Your card has insufficient funds.",
            decline_code="insufficient_funds",
        )

        with pytest.raises(StripeInsufficientFundsError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.decline_code == "insufficient_funds"

    def test_invalid_request_error(
        self, mock_stripe_payment_intent, invalid_request_error
    ):
        mock_stripe_payment_intent.create.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.stripe_code == "resource_missing"

    def test_invalid_account_error(self, mock_stripe_account, invalid_request_error):
        mock_stripe_account.retrieve.side_effect = invalid_request_error(
            message="No such account: 'acct_missing'", param="account"
        )

        with pytest.raises(StripeInvalidAccountError):
            StripeAdapter.retrieve_account("acct_missing")

    def test_rate_limit_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = stripe.RateLimitError(
            message="Too many requests hit the API too quickly."
        )

        with pytest.raises(StripeRateLimitError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.is_retryable is True

    def test_timeout_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = stripe.APIConnectionError(
            message="Request to Stripe timed out"
        )

        with pytest.raises(StripeTimeoutError):
            StripeAdapter.create_payment_intent(_intent_params())

    def test_api_connection_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = stripe.APIConnectionError(
            message="Could not connect to Stripe."
        )

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.stripe_code == "api_connection_error"

    def test_api_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = stripe.APIError(
            message="Something went wrong on Stripe's end."
        )

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.stripe_code == "api_error"

    def test_authentication_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = stripe.AuthenticationError(
            message="Invalid API Key provided."
        )

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.stripe_code == "authentication_error"

    def test_unknown_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = RuntimeError("boom")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.create_payment_intent(_intent_params())

        assert exc_info.value.stripe_code == "unknown_error"


# =============================================================================
# Operation Tests
# =============================================================================


class TestStripeAdapterPaymentIntents:
    """Tests for StripeAdapter.create_payment_intent."""

    def test_create_payment_intent_success(self, mock_stripe_payment_intent):
        result = StripeAdapter.create_payment_intent(
            _intent_params(
                customer_id="cus_123",
                metadata={"job_payment_id": "jp_1", "payment_type": "deposit"},
            )
        )

        assert isinstance(result, PaymentIntentResult)
        assert result.id == "pi_test123456"
        assert result.client_secret == "pi_test123456_secret_abc123"

        call_kwargs = mock_stripe_payment_intent.create.call_args.kwargs
        assert call_kwargs["amount"] == 1500
        assert call_kwargs["customer"] == "cus_123"
        assert call_kwargs["idempotency_key"] == "test-key"
        assert call_kwargs["metadata"]["payment_type"] == "deposit"

    def test_customer_omitted_when_not_given(self, mock_stripe_payment_intent):
        StripeAdapter.create_payment_intent(_intent_params())

        assert "customer" not in mock_stripe_payment_intent.create.call_args.kwargs


class TestStripeAdapterRefunds:
    """Tests for StripeAdapter.create_refund."""

    def test_create_partial_refund(self, mock_stripe_refund):
        result = StripeAdapter.create_refund(
            payment_intent_id="pi_test123456",
            idempotency_key="refund-key",
            amount_cents=500,
        )

        assert isinstance(result, RefundResult)
        assert result.id == "re_test123456"
        assert result.payment_intent_id == "pi_test123456"

        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert call_kwargs["amount"] == 500
        assert call_kwargs["payment_intent"] == "pi_test123456"

    def test_full_refund_omits_amount(self, mock_stripe_refund):
        StripeAdapter.create_refund(
            payment_intent_id="pi_test123456",
            idempotency_key="refund-key",
        )

        assert "amount" not in mock_stripe_refund.create.call_args.kwargs


class TestStripeAdapterCustomers:
    """Tests for StripeAdapter.create_customer."""

    def test_create_customer(self, mock_stripe_http_client):
        from unittest.mock import patch

        with patch("stripe.Customer") as mock_customer:
            mock_customer.create.return_value = MockStripeObject(
                {"id": "cus_new", "email": "owner@example.com", "metadata": {}}
            )

            result = StripeAdapter.create_customer(
                CreateCustomerParams(
                    email="owner@example.com",
                    idempotency_key="customer-key",
                    metadata={"user_id": "1"},
                )
            )

        assert result.id == "cus_new"
        assert mock_customer.create.call_args.kwargs["metadata"] == {"user_id": "1"}


class TestStripeAdapterConnect:
    """Tests for Connect account operations."""

    def test_create_express_account(self, mock_stripe_account):
        result = StripeAdapter.create_connect_account(
            email="builder@example.com",
            idempotency_key="account-key",
        )

        assert result.id == "acct_test123"
        call_kwargs = mock_stripe_account.create.call_args.kwargs
        assert call_kwargs["type"] == "express"
        assert call_kwargs["capabilities"]["transfers"] == {"requested": True}

    def test_retrieve_account_reads_disabled_reason(
        self, mock_stripe_account, mock_account
    ):
        mock_stripe_account.retrieve.return_value = mock_account(
            disabled_reason="rejected.fraud"
        )

        result = StripeAdapter.retrieve_account("acct_test123")

        assert result.disabled_reason == "rejected.fraud"
        assert result.charges_enabled is False

    def test_create_account_link(self, mock_stripe_account):
        result = StripeAdapter.create_account_link(
            "acct_test123",
            refresh_url="http://localhost:3000/contractor/connect/refresh",
            return_url="http://localhost:3000/contractor/connect/success",
        )

        assert result.url == "https://connect.stripe.com/setup/e/acct"
        call_kwargs = mock_stripe_account.link.create.call_args.kwargs
        assert call_kwargs["type"] == "account_onboarding"

    def test_create_login_link(self, mock_stripe_account):
        result = StripeAdapter.create_login_link("acct_test123")

        assert result.url == "https://connect.stripe.com/express/login"
        mock_stripe_account.create_login_link.assert_called_once_with("acct_test123")


class TestStripeAdapterCheckoutAndSubscriptions:
    """Tests for checkout sessions and subscription changes."""

    def test_subscription_checkout_copies_metadata(self, mock_stripe_checkout_session):
        result = StripeAdapter.create_checkout_session(
            CreateCheckoutSessionParams(
                mode="subscription",
                line_items=[{"price": "price_monthly", "quantity": 1}],
                success_url="http://localhost/success",
                cancel_url="http://localhost/cancel",
                idempotency_key="checkout-key",
                metadata={"user_id": "1", "plan_id": "2"},
                customer_email="owner@example.com",
            )
        )

        assert result.id == "cs_test123"
        call_kwargs = mock_stripe_checkout_session.create.call_args.kwargs
        assert call_kwargs["subscription_data"] == {
            "metadata": {"user_id": "1", "plan_id": "2"}
        }
        assert call_kwargs["customer_email"] == "owner@example.com"

    def test_payment_checkout_has_no_subscription_data(
        self, mock_stripe_checkout_session
    ):
        StripeAdapter.create_checkout_session(
            CreateCheckoutSessionParams(
                mode="payment",
                line_items=[{"price": "price_once", "quantity": 1}],
                success_url="http://localhost/success",
                cancel_url="http://localhost/cancel",
                idempotency_key="checkout-key",
                customer_id="cus_123",
            )
        )

        call_kwargs = mock_stripe_checkout_session.create.call_args.kwargs
        assert "subscription_data" not in call_kwargs
        assert call_kwargs["customer"] == "cus_123"

    def test_cancel_subscription_at_period_end(self, mock_stripe_subscription):
        result = StripeAdapter.cancel_subscription_at_period_end("sub_test123")

        assert result.cancel_at_period_end is True
        assert result.current_period_end == 1700000000
        mock_stripe_subscription.modify.assert_called_once_with(
            "sub_test123", cancel_at_period_end=True
        )


# =============================================================================
# Webhook Verification Tests
# =============================================================================


class TestStripeAdapterVerifyWebhookSignature:
    """Tests for StripeAdapter.verify_webhook_signature."""

    def test_verify_webhook_signature_success(self, mock_stripe_webhook):
        result = StripeAdapter.verify_webhook_signature(
            payload=b'{"id": "evt_test"}',
            signature="test_signature",
        )

        assert result["id"] == "evt_test123"
        assert result["type"] == "payment_intent.succeeded"

    def test_verify_webhook_signature_invalid(
        self, mock_stripe_webhook, signature_verification_error
    ):
        mock_stripe_webhook.construct_event.side_effect = signature_verification_error

        with pytest.raises(WebhookSignatureError) as exc_info:
            StripeAdapter.verify_webhook_signature(
                payload=b"tampered",
                signature="bad_signature",
            )

        assert "signature" in str(exc_info.value).lower()

    def test_missing_signature_rejected_without_sdk_call(self, mock_stripe_webhook):
        with pytest.raises(WebhookSignatureError):
            StripeAdapter.verify_webhook_signature(payload=b"{}", signature="")

        mock_stripe_webhook.construct_event.assert_not_called()


# =============================================================================
# Configuration Tests
# =============================================================================


class TestStripeAdapterConfiguration:
    """Tests for Stripe adapter configuration."""

    @override_settings(STRIPE_SECRET_KEY="sk_test_custom")
    def test_uses_settings_api_key(self, mock_stripe_payment_intent):
        StripeAdapter.create_payment_intent(_intent_params())

        assert stripe.api_key == "sk_test_custom"
        assert stripe.max_network_retries == 0

    @override_settings(STRIPE_API_TIMEOUT_SECONDS=30)
    def test_uses_settings_timeout(
        self, mock_stripe_payment_intent, mock_stripe_http_client
    ):
        StripeAdapter.create_payment_intent(_intent_params())

        mock_stripe_http_client.assert_called_with(timeout=30)

    def test_http_client_built_once(self, mock_stripe_payment_intent, mock_stripe_http_client):
        """Should reuse the HTTP client across calls."""
        StripeAdapter.create_payment_intent(_intent_params())
        StripeAdapter.create_payment_intent(_intent_params())

        mock_stripe_http_client.assert_called_once_with(timeout=10)
        assert stripe.default_http_client is mock_stripe_http_client.return_value
