"""
Webhook event handlers for Stripe events.

This module provides a handler registry and one handler per event type
the platform reacts to. Every handler is idempotent: a redelivery after a
mid-handler failure re-runs it from the top.

A handler returns a ServiceResult. A failed result (or an exception) makes
the processor mark the event failed and answer 500 so Stripe redelivers;
"nothing to do" is a successful result.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from core.services import ServiceResult
from memberships.services import SubscriptionReconciler
from payments.services import ConnectAccountService, JobPaymentOrchestrator

if TYPE_CHECKING:
    from payments.models import WebhookEvent


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Each event type has exactly one handler; registering a second one for
    the same type is a programming error.

    Usage:
        @register_handler("payment_intent.succeeded")
        def handle_payment_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
            ...
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        existing = WEBHOOK_HANDLERS.get(event_type)
        if existing is not None and existing is not func:
            raise ValueError(f"Handler already registered for {event_type}")
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def get_handler(event_type: str) -> Callable[[WebhookEvent], ServiceResult] | None:
    return WEBHOOK_HANDLERS.get(event_type)


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown event types are acknowledged with a successful result.
    """
    handler = get_handler(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    return handler(webhook_event)


def _event_object(webhook_event: WebhookEvent) -> dict[str, Any]:
    return (webhook_event.payload.get("data") or {}).get("object") or {}


def _missing_object_id(webhook_event: WebhookEvent) -> ServiceResult:
    logger.error(
        f"{webhook_event.event_type}: could not extract object id",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return ServiceResult.failure(
        "Could not extract object id from webhook",
        error_code="INVALID_WEBHOOK_PAYLOAD",
    )


# =============================================================================
# Job Payment Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Advance the job payment stage paid by the intent.

    Intents that are not job payments, and stages already confirmed, are
    no-ops.
    """
    payment_intent_id = webhook_event.get_object_id()
    if not payment_intent_id:
        return _missing_object_id(webhook_event)

    intent = _event_object(webhook_event)
    confirmation = JobPaymentOrchestrator().confirm_stage_payment(
        payment_intent_id,
        amount_received=intent.get("amount_received"),
    )
    return ServiceResult.success(confirmation)


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Record the failure marker; the stage is unchanged."""
    payment_intent_id = webhook_event.get_object_id()
    if not payment_intent_id:
        return _missing_object_id(webhook_event)

    intent = _event_object(webhook_event)
    error = intent.get("last_payment_error") or {}
    job_payment = JobPaymentOrchestrator().record_stage_failure(
        payment_intent_id,
        error.get("message") or "Payment failed",
    )
    return ServiceResult.success(job_payment)


# =============================================================================
# Membership Handlers
# =============================================================================


@register_handler("checkout.session.completed")
def handle_checkout_session_completed(webhook_event: WebhookEvent) -> ServiceResult:
    """New membership or in-place upgrade."""
    return SubscriptionReconciler().apply_checkout(_event_object(webhook_event))


@register_handler("invoice.paid")
def handle_invoice_paid(webhook_event: WebhookEvent) -> ServiceResult:
    return SubscriptionReconciler().record_invoice_paid(_event_object(webhook_event))


@register_handler("invoice.payment_failed")
def handle_invoice_payment_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Flag the membership; access continues until the anchor."""
    return SubscriptionReconciler().record_invoice_failed(_event_object(webhook_event))


@register_handler("customer.subscription.deleted")
def handle_subscription_deleted(webhook_event: WebhookEvent) -> ServiceResult:
    return SubscriptionReconciler().cancel_subscription(_event_object(webhook_event))


@register_handler("customer.subscription.updated")
def handle_subscription_updated(webhook_event: WebhookEvent) -> ServiceResult:
    return SubscriptionReconciler().apply_subscription_update(
        _event_object(webhook_event)
    )


# =============================================================================
# Connect Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Sync a contractor's Connect account flags.

    Unknown accounts are acknowledged.
    """
    account = _event_object(webhook_event)
    if not account.get("id"):
        return _missing_object_id(webhook_event)
    return ConnectAccountService().sync_from_account(account)
