"""
Celery tasks for payment housekeeping.

Webhooks are processed synchronously in the request; these periodic tasks
only keep the dedup store bounded and recover events a crashed worker left
in PROCESSING.

Usage:
    # Scheduled through django-celery-beat (migration 0002)
    from payments.tasks import purge_processed_webhook_events
    purge_processed_webhook_events.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


STUCK_PROCESSING_THRESHOLD_MINUTES = 30


@shared_task
def purge_processed_webhook_events() -> dict:
    """
    Delete processed webhook events older than the dedup window.

    Failed and in-flight events are kept: a failed event must still be
    reclaimable when Stripe redelivers it.

    Returns:
        Dict with count of events deleted
    """
    cutoff = timezone.now() - timedelta(minutes=settings.WEBHOOK_DEDUP_WINDOW_MINUTES)

    deleted_count, _ = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSED,
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count > 0:
        logger.info(
            f"Purged {deleted_count} processed webhook events",
            extra={
                "deleted_count": deleted_count,
                "cutoff": cutoff.isoformat(),
            },
        )

    return {"deleted_count": deleted_count}


@shared_task
def reset_stuck_webhook_events() -> dict:
    """
    Mark events stuck in PROCESSING as failed.

    A request that died mid-dispatch leaves its row in PROCESSING, which
    redeliveries treat as a duplicate. Failing it lets the next redelivery
    reclaim the event.

    Returns:
        Dict with count of events reset
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)

    stuck_events = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for event in stuck_events:
        logger.warning(
            "Reset stuck webhook event",
            extra={
                "webhook_event_id": str(event.id),
                "stripe_event_id": event.stripe_event_id,
                "stuck_since": event.updated_at.isoformat(),
            },
        )
        event.mark_failed("Processing timed out - reset for redelivery")
        reset_count += 1

    return {"reset_count": reset_count}
