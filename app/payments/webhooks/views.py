"""
Webhook endpoint view for Stripe.

The view:
1. Verifies the webhook signature against the raw body
2. Claims the event (dedup by Stripe event id)
3. Dispatches it synchronously to its handler
4. Answers 200 when done, 500 when the handler failed

Responses:
    200 {"received": true}                    processed or unknown type
    200 {"received": true, "duplicate": true} already seen
    400 {"error": ...}                        authenticity failure only
    500 {"error": "Webhook processing failed"} Stripe will redeliver

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe-webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import WebhookSignatureError
from payments.webhooks.processor import process_stripe_event


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive, verify and process a Stripe webhook event.

    Nothing is stored for a request that fails verification. Business
    failures never produce a 400: Stripe does not redeliver those.

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    try:
        event_data = StripeAdapter.verify_webhook_signature(payload, signature)
    except WebhookSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": e.message},
        )
        return JsonResponse({"error": e.message}, status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")
    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return JsonResponse({"error": "Invalid event"}, status=400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
    )

    outcome = process_stripe_event(event_data)

    if outcome.duplicate:
        return JsonResponse({"received": True, "duplicate": True}, status=200)
    if outcome.failed:
        return JsonResponse({"error": "Webhook processing failed"}, status=500)
    return JsonResponse({"received": True}, status=200)
