"""
Webhook handling for payment events from Stripe.

Events are verified, deduplicated through WebhookEvent and dispatched
synchronously to the handler registered for their type.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe-webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.processor import WebhookOutcome, process_stripe_event
from payments.webhooks.views import stripe_webhook

__all__ = [
    "WebhookOutcome",
    "dispatch_webhook",
    "process_stripe_event",
    "register_handler",
    "stripe_webhook",
]
