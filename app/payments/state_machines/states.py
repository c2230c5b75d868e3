"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

JobPayment stages (see transitions.py for the single transition table):
    pending → deposit_paid → completed                       (two-stage)
    pending → deposit_paid → pre_start_paid → completed      (three-stage)
    deposit_paid/pre_start_paid/completed/partially_refunded
        → partially_refunded / refunded

ConnectAccount status (derived from Stripe's account object):
    pending → active
    any → rejected / disabled

WebhookEvent status:
    processing → processed
    processing → failed → processing (redelivery)
"""

from django.db import models


class PaymentStage(models.TextChoices):
    """
    Stages of a JobPayment.

    Terminal state: REFUNDED
    """

    PENDING = "pending", "Pending"
    DEPOSIT_PAID = "deposit_paid", "Deposit Paid"
    PRE_START_PAID = "pre_start_paid", "Pre-start Paid"
    COMPLETED = "completed", "Completed"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially Refunded"
    REFUNDED = "refunded", "Refunded"


class PaymentType(models.TextChoices):
    """
    Stage payment kinds.

    Values travel in PaymentIntent metadata as ``payment_type``.
    """

    DEPOSIT = "deposit", "Deposit"
    PRE_START = "prestart", "Pre-start"
    COMPLETION = "completion", "Completion"


class ConnectAccountStatus(models.TextChoices):
    """
    Status of a contractor's Stripe Connect account.

    Mapping from Stripe's account object:
        requirements.disabled_reason starts with "rejected" → REJECTED
        any other disabled_reason → DISABLED
        charges_enabled and payouts_enabled → ACTIVE
        otherwise → PENDING
    """

    PENDING = "pending", "Pending"
    ACTIVE = "active", "Active"
    REJECTED = "rejected", "Rejected"
    DISABLED = "disabled", "Disabled"


class WebhookEventStatus(models.TextChoices):
    """
    Processing states for received webhook events.

    PROCESSING and PROCESSED rows make redeliveries duplicates; FAILED rows
    are reclaimed by the next delivery of the same event.
    """

    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


__all__ = [
    "ConnectAccountStatus",
    "PaymentStage",
    "PaymentType",
    "WebhookEventStatus",
]
