"""
Payments app configuration.

This app provides the job payment side of the marketplace:
- Staged escrow ledger for job payments
- Stripe Connect accounts for contractors
- Stripe webhook verification, dedup and dispatch
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
