"""
URL configuration for the payments app.

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments.views import (
    CompletionPaymentView,
    ConnectDashboardView,
    ConnectSetupView,
    ConnectStatusView,
    CreateJobPaymentView,
    DepositPaymentView,
    PaymentDetailView,
    PaymentHistoryView,
    PaymentStatsView,
    PreStartPaymentView,
    RefundView,
)
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    # Job payments
    path("job/create/", CreateJobPaymentView.as_view(), name="job-create"),
    path("job/deposit/", DepositPaymentView.as_view(), name="job-deposit"),
    path("job/prestart/", PreStartPaymentView.as_view(), name="job-prestart"),
    path("job/completion/", CompletionPaymentView.as_view(), name="job-completion"),
    path("job/refund/", RefundView.as_view(), name="job-refund"),
    # Connect
    path("connect/setup/", ConnectSetupView.as_view(), name="connect-setup"),
    path("connect/dashboard/", ConnectDashboardView.as_view(), name="connect-dashboard"),
    path("connect/status/", ConnectStatusView.as_view(), name="connect-status"),
    # History
    path("history/", PaymentHistoryView.as_view(), name="history"),
    path("stats/overview/", PaymentStatsView.as_view(), name="stats-overview"),
    path("<uuid:payment_id>/", PaymentDetailView.as_view(), name="detail"),
]
