"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Authentication endpoints (simplejwt)
        token/                     - Obtain JWT pair
        token/refresh/             - Refresh access token
        me/                        - Current user
    /api/v1/payments/              - Payment endpoints
        webhooks/stripe/           - Stripe webhook endpoint (POST)
        job/create/                - Create job payment record
        job/deposit/               - Deposit PaymentIntent
        job/prestart/              - Pre-start PaymentIntent
        job/completion/            - Completion PaymentIntent
        job/refund/                - Refund a captured stage
        connect/setup/             - Connect onboarding link
        connect/dashboard/         - Express dashboard link
        connect/status/            - Connect account status
        history/                   - Payment history
        stats/overview/            - Payment stats (admin)
        {id}/                      - Job payment detail
    /api/v1/memberships/           - Membership endpoints
        checkout/                  - Create Checkout Session
        cancel/                    - Cancel current membership
        auto-renew/                - Toggle auto-renew
        current/                   - Current membership
        plans/                     - Active plans (public)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Authentication (simplejwt)
    path("auth/", include("authentication.urls")),
    # Payments
    path("payments/", include("payments.urls")),
    # Memberships
    path("memberships/", include("memberships.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Payments Admin"
admin.site.site_title = "Payments Admin"
admin.site.index_title = "Ledger, memberships and webhooks"
