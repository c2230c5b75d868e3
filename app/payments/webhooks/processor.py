"""
Dedup, dispatch and bookkeeping for verified Stripe events.

    claim the event row   → not claimed: duplicate, nothing runs
    dispatch to handler   → success: row processed
                          → exception or failed result: row failed

A failed row is claimed again by the next delivery of the same event, so
Stripe's redelivery is the retry mechanism.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from payments.models import WebhookEvent
from payments.webhooks.handlers import dispatch_webhook


logger = logging.getLogger(__name__)


@dataclass
class WebhookOutcome:
    """
    Attributes:
        processed: Handler ran (or no handler exists) and succeeded
        duplicate: Event was already processed or is being processed
        error: Failure message when neither flag is set
    """

    processed: bool = False
    duplicate: bool = False
    error: str | None = None

    @property
    def failed(self) -> bool:
        return not (self.processed or self.duplicate)


def process_stripe_event(event_data: dict[str, Any]) -> WebhookOutcome:
    """
    Process one verified Stripe event.

    Args:
        event_data: Event dict returned by signature verification
    """
    stripe_event_id = event_data["id"]
    event_type = event_data["type"]
    log_context = {"stripe_event_id": stripe_event_id, "event_type": event_type}

    webhook_event, claimed = WebhookEvent.claim(
        stripe_event_id=stripe_event_id,
        event_type=event_type,
        payload=event_data,
    )
    if not claimed:
        logger.info(
            "Duplicate webhook event, skipping",
            extra={**log_context, "status": webhook_event.status},
        )
        return WebhookOutcome(duplicate=True)

    start_time = time.time()
    try:
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        logger.exception("Webhook handler raised", extra=log_context)
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        return WebhookOutcome(error=str(e))

    duration_ms = (time.time() - start_time) * 1000
    if not result.success:
        logger.error(
            "Webhook handler failed",
            extra={
                **log_context,
                "error": result.error,
                "error_code": result.error_code,
                "duration_ms": duration_ms,
            },
        )
        webhook_event.mark_failed(f"{result.error_code}: {result.error}")
        return WebhookOutcome(error=result.error)

    webhook_event.mark_processed()
    logger.info(
        "Webhook event processed",
        extra={**log_context, "duration_ms": duration_ms},
    )
    return WebhookOutcome(processed=True)
