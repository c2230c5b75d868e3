"""
Membership admin configuration.

Records are read-only apart from the plan catalogue: membership state is
owned by Stripe events and the reconciler.
"""

from django.contrib import admin

from memberships.models import MembershipPlan, MembershipRecord


@admin.register(MembershipPlan)
class MembershipPlanAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "user_type",
        "tier",
        "monthly_price",
        "yearly_price",
        "platform_fee_percent",
        "is_active",
        "display_order",
    ]
    list_filter = ["user_type", "tier", "is_active"]
    search_fields = ["name", "stripe_price_id_monthly", "stripe_price_id_yearly"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["user_type", "display_order"]


@admin.register(MembershipRecord)
class MembershipRecordAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "user",
        "plan",
        "status",
        "billing_period",
        "billing_type",
        "renewal_date",
        "is_auto_renew",
        "created_at",
    ]
    list_filter = ["status", "billing_period", "billing_type", "is_auto_renew"]
    search_fields = [
        "id",
        "user__email",
        "stripe_subscription_id",
        "stripe_checkout_session_id",
    ]
    list_select_related = ["user", "plan"]
    readonly_fields = [
        "id",
        "user",
        "plan",
        "status",
        "billing_period",
        "billing_type",
        "stripe_subscription_id",
        "stripe_checkout_session_id",
        "start_date",
        "renewal_date",
        "cancelled_at",
        "cancellation_reason",
        "last_invoice_id",
        "last_payment_at",
        "payment_failed_at",
        "amount_paid",
        "upgrade_history",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False
