import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import payments.models.job_payment


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
    ]


STAGE_CHOICES = [
    ("pending", "Pending"),
    ("deposit_paid", "Deposit Paid"),
    ("pre_start_paid", "Pre-start Paid"),
    ("completed", "Completed"),
    ("partially_refunded", "Partially Refunded"),
    ("refunded", "Refunded"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ConnectAccount",
            fields=[
                *_timestamps(),
                (
                    "stripe_account_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe Account ID (acct_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("active", "Active"),
                            ("rejected", "Rejected"),
                            ("disabled", "Disabled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("charges_enabled", models.BooleanField(default=False)),
                ("payouts_enabled", models.BooleanField(default=False)),
                ("details_submitted", models.BooleanField(default=False)),
                ("disabled_reason", models.CharField(blank=True, default="", max_length=255)),
                ("last_synced_at", models.DateTimeField(blank=True, null=True)),
                (
                    "contractor",
                    models.OneToOneField(
                        help_text="Contractor this account belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="connect_account",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Connect Account",
                "verbose_name_plural": "Connect Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="JobPayment",
            fields=[
                *_timestamps(),
                (
                    "job_request_id",
                    models.UUIDField(db_index=True, help_text="External job request reference"),
                ),
                (
                    "bid_id",
                    models.UUIDField(
                        help_text="External accepted bid reference (one payment per bid)",
                        unique=True,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default=payments.models.job_payment.get_default_currency,
                        help_text="ISO currency code",
                        max_length=3,
                    ),
                ),
                (
                    "total_amount",
                    models.PositiveBigIntegerField(help_text="Agreed bid amount in cents"),
                ),
                (
                    "deposit_amount",
                    models.PositiveBigIntegerField(help_text="Deposit stage amount in cents"),
                ),
                (
                    "pre_start_amount",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Pre-start stage amount in cents (0 for two-stage jobs)",
                    ),
                ),
                (
                    "completion_amount",
                    models.PositiveBigIntegerField(help_text="Completion stage amount in cents"),
                ),
                (
                    "platform_fee_percent",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Platform fee percentage applied at creation",
                        max_digits=5,
                    ),
                ),
                (
                    "platform_fee_amount",
                    models.PositiveBigIntegerField(default=0, help_text="Platform fee in cents"),
                ),
                (
                    "captured_amount",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Sum of confirmed stage payments in cents",
                    ),
                ),
                (
                    "refunded_amount",
                    models.PositiveBigIntegerField(default=0, help_text="Sum of refunds in cents"),
                ),
                (
                    "uses_pre_start",
                    models.BooleanField(
                        default=False,
                        help_text="Three-stage (deposit, pre-start, completion) payment policy",
                    ),
                ),
                (
                    "stage",
                    models.CharField(
                        choices=STAGE_CHOICES,
                        db_index=True,
                        default="pending",
                        help_text="Current ledger stage",
                        max_length=32,
                    ),
                ),
                (
                    "deposit_intent_id",
                    models.CharField(
                        blank=True,
                        help_text="Latest deposit PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "pre_start_intent_id",
                    models.CharField(
                        blank=True,
                        help_text="Latest pre-start PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "completion_intent_id",
                    models.CharField(
                        blank=True,
                        help_text="Latest completion PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("deposit_paid_at", models.DateTimeField(blank=True, null=True)),
                ("pre_start_paid_at", models.DateTimeField(blank=True, null=True)),
                ("completion_paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "last_payment_error",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Latest stage payment failure message",
                    ),
                ),
                ("last_payment_error_at", models.DateTimeField(blank=True, null=True)),
                (
                    "contractor",
                    models.ForeignKey(
                        help_text="Contractor performing the job",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="job_payments_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        help_text="Customer paying for the job",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="job_payments_made",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Job Payment",
                "verbose_name_plural": "Job Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["customer", "created_at"], name="job_payment_customer_idx"
                    ),
                    models.Index(
                        fields=["contractor", "created_at"], name="job_payment_contractor_idx"
                    ),
                    models.Index(fields=["stage", "created_at"], name="job_payment_stage_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(refunded_amount__lte=models.F("captured_amount")),
                        name="job_payment_refunded_lte_captured",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(captured_amount__lte=models.F("total_amount")),
                        name="job_payment_captured_lte_total",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JobPaymentRefund",
            fields=[
                *_timestamps(),
                ("payment_intent_id", models.CharField(max_length=255)),
                (
                    "amount",
                    models.PositiveBigIntegerField(help_text="Refunded amount in cents"),
                ),
                ("admin_fee", models.PositiveBigIntegerField(default=0)),
                ("stripe_fee", models.PositiveBigIntegerField(default=0)),
                ("net_amount", models.BigIntegerField(default=0)),
                (
                    "stripe_refund_id",
                    models.CharField(
                        help_text="Stripe Refund ID (re_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("reason", models.TextField(blank=True, default="")),
                ("processed_at", models.DateTimeField()),
                (
                    "job_payment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refunds",
                        to="payments.jobpayment",
                    ),
                ),
                (
                    "requested_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="job_payment_refunds",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Job Payment Refund",
                "verbose_name_plural": "Job Payment Refunds",
                "ordering": ["processed_at"],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                *_timestamps(),
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(default=dict, help_text="Verified webhook payload from Stripe"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="processing",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, default="")),
                ("attempts", models.PositiveSmallIntegerField(default=1)),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "processed_at"], name="webhook_event_status_idx"
                    ),
                    models.Index(
                        fields=["event_type", "created_at"], name="webhook_event_type_idx"
                    ),
                ],
            },
        ),
    ]
