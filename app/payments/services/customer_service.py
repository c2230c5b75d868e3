"""
Stripe Customer lookup for marketplace users.

A user gets one Stripe Customer, created lazily on their first payment or
checkout and cached on User.stripe_customer_id.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model

from core.services import BaseService
from payments.adapters import CreateCustomerParams, IdempotencyKeyGenerator, StripeAdapter

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


class StripeCustomerService(BaseService):
    """Get-or-create the Stripe Customer for a user."""

    def __init__(self, stripe_adapter: type | None = None):
        self.stripe = stripe_adapter or StripeAdapter

    def get_or_create_customer_id(self, user: User) -> str:
        """
        Return the user's Stripe Customer ID, creating the customer if needed.

        The idempotency key is derived from the user id, so concurrent first
        payments resolve to the same Stripe Customer.
        """
        if user.stripe_customer_id:
            return user.stripe_customer_id

        result = self.stripe.create_customer(
            CreateCustomerParams(
                email=user.email,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    operation="create_customer",
                    entity_id=user.pk,
                ),
                metadata={"user_id": str(user.pk), "role": user.role},
            )
        )

        get_user_model().objects.filter(pk=user.pk, stripe_customer_id="").update(
            stripe_customer_id=result.id
        )
        user.stripe_customer_id = result.id

        logger.info(
            "Created Stripe customer",
            extra={"user_id": str(user.pk), "stripe_customer_id": result.id},
        )
        return result.id
