"""
WebhookEvent model for Stripe webhook deduplication.

Every verified webhook event is recorded once by its Stripe event id. The
row's status decides what a redelivery does:

    processing / processed → duplicate, acknowledged without processing
    failed                 → reclaimed and processed again

Processed rows are swept after WEBHOOK_DEDUP_WINDOW_MINUTES by
payments.tasks.purge_processed_webhook_events.

Usage:
    from payments.models import WebhookEvent

    event, claimed = WebhookEvent.claim(
        stripe_event_id="evt_123",
        event_type="payment_intent.succeeded",
        payload=payload,
    )
    if not claimed:
        return duplicate_response()
    ...
    event.mark_processed()
"""

from __future__ import annotations

from django.db import IntegrityError, models, transaction
from django.db.models import F
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Durable record of a received Stripe webhook event.

    Fields:
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: Type of webhook event
        payload: Verified event payload
        status: processing, processed or failed
        processed_at: When the event was processed successfully
        error_message: Failure details for the last attempt
        attempts: Number of times the event was claimed
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )
    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
    )
    payload = models.JSONField(
        default=dict,
        help_text="Verified webhook payload from Stripe",
    )
    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PROCESSING,
        db_index=True,
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True, default="")
    attempts = models.PositiveSmallIntegerField(default=1)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "processed_at"], name="webhook_event_status_idx"),
            models.Index(fields=["event_type", "created_at"], name="webhook_event_type_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type}, {self.status})"

    @classmethod
    def claim(
        cls, stripe_event_id: str, event_type: str, payload: dict
    ) -> tuple[WebhookEvent, bool]:
        """
        Atomically claim an event for processing.

        Returns:
            (event, claimed). claimed is False when another delivery already
            processed the event or is processing it right now.
        """
        try:
            with transaction.atomic():
                event = cls.objects.create(
                    stripe_event_id=stripe_event_id,
                    event_type=event_type,
                    payload=payload,
                    status=WebhookEventStatus.PROCESSING,
                )
            return event, True
        except IntegrityError:
            pass

        reclaimed = cls.objects.filter(
            stripe_event_id=stripe_event_id,
            status=WebhookEventStatus.FAILED,
        ).update(
            status=WebhookEventStatus.PROCESSING,
            attempts=F("attempts") + 1,
            error_message="",
            updated_at=timezone.now(),
        )
        event = cls.objects.get(stripe_event_id=stripe_event_id)
        return event, bool(reclaimed)

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = ""
        self.save(update_fields=["status", "processed_at", "error_message", "updated_at"])

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message[:2000]
        self.save(update_fields=["status", "error_message", "updated_at"])

    def get_object_id(self) -> str | None:
        """Extract data.object.id from the payload."""
        try:
            return self.payload.get("data", {}).get("object", {}).get("id")
        except (AttributeError, TypeError):
            return None
