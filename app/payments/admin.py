"""
Payment admin configuration.

Ledger entries are read-only here: stages and amounts only move through
the orchestrator's conditional updates.
"""

from django.contrib import admin

from payments.models import ConnectAccount, JobPayment, JobPaymentRefund, WebhookEvent


@admin.register(ConnectAccount)
class ConnectAccountAdmin(admin.ModelAdmin):
    """Visibility into contractor Stripe Connect accounts."""

    list_display = [
        "id",
        "contractor",
        "stripe_account_id",
        "status",
        "charges_enabled",
        "payouts_enabled",
        "last_synced_at",
    ]
    list_filter = ["status", "charges_enabled", "payouts_enabled"]
    search_fields = ["id", "stripe_account_id", "contractor__email"]
    readonly_fields = [
        "id",
        "contractor",
        "stripe_account_id",
        "status",
        "charges_enabled",
        "payouts_enabled",
        "details_submitted",
        "disabled_reason",
        "last_synced_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False


class JobPaymentRefundInline(admin.TabularInline):
    model = JobPaymentRefund
    extra = 0
    can_delete = False
    fields = [
        "stripe_refund_id",
        "payment_intent_id",
        "amount",
        "admin_fee",
        "stripe_fee",
        "net_amount",
        "requested_by",
        "processed_at",
    ]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(JobPayment)
class JobPaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for JobPayment.

    Every field is read-only; refunds go through the refund endpoint.
    """

    list_display = [
        "id",
        "customer",
        "contractor",
        "stage",
        "total_amount",
        "captured_amount",
        "refunded_amount",
        "uses_pre_start",
        "created_at",
    ]
    list_filter = ["stage", "uses_pre_start", "created_at"]
    search_fields = [
        "id",
        "job_request_id",
        "bid_id",
        "customer__email",
        "contractor__email",
        "deposit_intent_id",
        "pre_start_intent_id",
        "completion_intent_id",
    ]
    list_select_related = ["customer", "contractor"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [JobPaymentRefundInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "job_request_id", "bid_id", "customer", "contractor", "stage"),
            },
        ),
        (
            "Amounts",
            {
                "fields": (
                    "currency",
                    "total_amount",
                    "deposit_amount",
                    "pre_start_amount",
                    "completion_amount",
                    "platform_fee_percent",
                    "platform_fee_amount",
                    "captured_amount",
                    "refunded_amount",
                    "uses_pre_start",
                ),
            },
        ),
        (
            "Stage Payments",
            {
                "fields": (
                    "deposit_intent_id",
                    "deposit_paid_at",
                    "pre_start_intent_id",
                    "pre_start_paid_at",
                    "completion_intent_id",
                    "completion_paid_at",
                ),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("last_payment_error", "last_payment_error_at"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "attempts",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "status",
        "attempts",
        "payload",
        "processed_at",
        "error_message",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "stripe_event_id", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "attempts"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Rows are removed by the purge task only."""
        return False
