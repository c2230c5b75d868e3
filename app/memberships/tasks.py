"""
Celery tasks for memberships.

Usage:
    # Scheduled hourly through django-celery-beat (migration 0002)
    from memberships.tasks import expire_memberships
    expire_memberships.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from memberships.services import SubscriptionReconciler

logger = logging.getLogger(__name__)


@shared_task(acks_late=True)
def expire_memberships() -> dict:
    """
    Expire memberships whose renewal date has passed.

    Renewals arrive as invoice.paid webhooks before the anchor, so any
    record still past its anchor was not renewed.

    Returns:
        {"expired": <count>}
    """
    expired = SubscriptionReconciler().expire_due_memberships()
    logger.info("Membership expiry sweep finished", extra={"expired": expired})
    return {"expired": expired}
