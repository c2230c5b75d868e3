"""
Subscription reconciler for memberships.

Converges each user's membership state to at most one active record while
Stripe delivers checkout, invoice and subscription events in any order and
any number of times.

Client-path methods (create_checkout_session, cancel_membership,
set_auto_renew) raise domain exceptions. Webhook-path methods return a
ServiceResult; "nothing to do" (unknown subscription, replayed session,
expired record) is a successful result.

Every webhook-path change runs inside transaction.atomic() with the rows
it touches locked by select_for_update().

Usage:
    from memberships.services import SubscriptionReconciler

    reconciler = SubscriptionReconciler()
    session = reconciler.create_checkout_session(
        user, plan_id, "yearly", "recurring", "https://localhost/membership"
    )
    return {"url": session.url}
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone as dt_timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from core.exceptions import PermissionDeniedError
from core.helpers import validate_uuid
from core.services import BaseService, ServiceResult
from memberships.exceptions import (
    CheckoutValidationError,
    MembershipNotFoundError,
    PlanNotFoundError,
)
from memberships.models import (
    BillingPeriod,
    BillingType,
    MembershipPlan,
    MembershipRecord,
    MembershipStatus,
    PlanUserType,
    add_billing_period,
)
from payments.adapters import (
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import StripeError
from payments.services.customer_service import StripeCustomerService

if TYPE_CHECKING:
    from authentication.models import User


logger = logging.getLogger(__name__)


def _from_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


def _invoice_subscription_id(invoice: dict[str, Any]) -> str | None:
    """Subscription id from either the legacy or the parent-based invoice shape."""
    subscription = invoice.get("subscription")
    if subscription:
        return subscription if isinstance(subscription, str) else subscription.get("id")
    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return details.get("subscription")


def _invoice_period_end(invoice: dict[str, Any]) -> datetime | None:
    lines = (invoice.get("lines") or {}).get("data") or []
    ends = [(line.get("period") or {}).get("end") for line in lines]
    ends = [end for end in ends if end]
    return _from_timestamp(max(ends)) if ends else None


def _subscription_period_end(subscription: dict[str, Any]) -> datetime | None:
    if subscription.get("current_period_end"):
        return _from_timestamp(subscription["current_period_end"])
    items = (subscription.get("items") or {}).get("data") or []
    ends = [item.get("current_period_end") for item in items if item.get("current_period_end")]
    return _from_timestamp(max(ends)) if ends else None


def _subscription_price_id(subscription: dict[str, Any]) -> str | None:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    return (items[0].get("price") or {}).get("id")


class SubscriptionReconciler(BaseService):
    """Creates, upgrades, renews, cancels and expires membership records."""

    def __init__(self, stripe_adapter: type | None = None):
        self.stripe = stripe_adapter or StripeAdapter
        self.customers = StripeCustomerService(stripe_adapter=self.stripe)

    # =========================================================================
    # Checkout (client path)
    # =========================================================================

    def create_checkout_session(
        self,
        user: User,
        plan_id: uuid.UUID | str,
        billing_period: str,
        billing_type: str,
        url: str,
    ) -> CheckoutSessionResult:
        """
        Create a Stripe Checkout Session for a plan.

        Recurring purchases use the plan's Stripe price in subscription
        mode; one-time purchases charge the plan price once in payment mode.
        The session metadata carries everything apply_checkout needs.

        Raises:
            PermissionDeniedError: Admins cannot buy memberships
            PlanNotFoundError: Unknown or inactive plan
            CheckoutValidationError: Plan, period, billing type or URL rejected
            StripeError: Stripe rejected the request
        """
        if user.is_platform_admin:
            raise PermissionDeniedError("Administrators cannot purchase memberships")

        plan = self._get_active_plan(plan_id)

        if billing_period not in BillingPeriod.values:
            raise CheckoutValidationError(
                "Invalid billing period (must be 'monthly' or 'yearly')",
                details={"billing_period": billing_period},
            )
        if billing_type not in BillingType.values:
            raise CheckoutValidationError(
                "Invalid billing type (must be 'recurring' or 'one-time')",
                details={"billing_type": billing_type},
            )
        if plan.user_type != user.role:
            raise CheckoutValidationError(
                "This plan is not available for your account type",
                details={"plan_user_type": plan.user_type, "user_role": user.role},
            )
        if (
            plan.user_type == PlanUserType.CONTRACTOR
            and billing_type == BillingType.ONE_TIME
            and billing_period == BillingPeriod.MONTHLY
        ):
            raise CheckoutValidationError(
                "Contractor plans cannot be bought as a one-time monthly payment",
            )
        self._validate_return_url(url)

        if billing_type == BillingType.RECURRING:
            price_id = plan.stripe_price_id_for(billing_period)
            if not price_id:
                raise CheckoutValidationError(
                    "Stripe price ID not set for this plan",
                    error_code="PLAN_NOT_PURCHASABLE",
                    details={"plan_id": str(plan.id), "billing_period": billing_period},
                )
            mode = "subscription"
            line_items = [{"price": price_id, "quantity": 1}]
        else:
            mode = "payment"
            line_items = [
                {
                    "price_data": {
                        "currency": settings.PAYMENT_CURRENCY,
                        "unit_amount": plan.price_for(billing_period),
                        "product_data": {"name": f"{plan.name} ({billing_period})"},
                    },
                    "quantity": 1,
                }
            ]

        session = self.stripe.create_checkout_session(
            CreateCheckoutSessionParams(
                mode=mode,
                line_items=line_items,
                success_url=url,
                cancel_url=url,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    operation="membership_checkout",
                    entity_id=user.pk,
                    attempt=uuid.uuid4().hex[:12],
                ),
                metadata={
                    "user_id": str(user.pk),
                    "plan_id": str(plan.id),
                    "billing_period": billing_period,
                    "billing_type": billing_type,
                    "is_auto_renew": "true" if billing_type == BillingType.RECURRING else "false",
                },
                customer_id=self.customers.get_or_create_customer_id(user),
            )
        )

        logger.info(
            "Membership checkout session created",
            extra={
                "user_id": str(user.pk),
                "plan_id": str(plan.id),
                "checkout_session_id": session.id,
                "mode": mode,
            },
        )
        return session

    @staticmethod
    def _get_active_plan(plan_id: uuid.UUID | str) -> MembershipPlan:
        plan = None
        if validate_uuid(plan_id):
            plan = MembershipPlan.objects.filter(id=plan_id, is_active=True).first()
        if plan is None:
            raise PlanNotFoundError(
                "Membership plan not found",
                details={"plan_id": str(plan_id)},
            )
        return plan

    @staticmethod
    def _validate_return_url(url: str) -> None:
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise CheckoutValidationError(
                "URL must be an absolute http or https URL",
                error_code="INVALID_URL",
            )
        hostname = parsed.hostname.lower()
        allowed = [domain.lower() for domain in settings.ALLOWED_CHECKOUT_DOMAINS]
        if not any(hostname == domain or hostname.endswith(f".{domain}") for domain in allowed):
            raise CheckoutValidationError(
                "URL domain not allowed",
                error_code="INVALID_URL",
                details={"hostname": hostname},
            )

    # =========================================================================
    # Checkout (webhook path)
    # =========================================================================

    def apply_checkout(self, session: dict[str, Any]) -> ServiceResult[MembershipRecord]:
        """
        Apply checkout.session.completed.

        With an active record the upgrade path replaces its plan in place;
        without one a new active record is created. Sessions missing their
        user or plan are logged and acknowledged, since redelivery cannot
        fix them.
        """
        session_id = session.get("id", "")
        metadata = session.get("metadata") or {}
        log_context = {"checkout_session_id": session_id, "user_id": metadata.get("user_id")}

        if session.get("payment_status") not in ("paid", "no_payment_required"):
            logger.info(
                "Checkout session not paid, skipping",
                extra={**log_context, "payment_status": session.get("payment_status")},
            )
            return ServiceResult.success(None)

        user = self._get_user(metadata.get("user_id"))
        plan_id = metadata.get("plan_id")
        plan = MembershipPlan.objects.filter(id=plan_id).first() if validate_uuid(plan_id) else None
        if user is None or plan is None:
            logger.warning(
                "Checkout session references unknown user or plan",
                extra={**log_context, "plan_id": plan_id},
            )
            return ServiceResult.success(None)

        billing_period = metadata.get("billing_period")
        if billing_period not in BillingPeriod.values:
            billing_period = BillingPeriod.MONTHLY
        subscription_id = session.get("subscription") or None
        billing_type = BillingType.RECURRING if subscription_id else BillingType.ONE_TIME
        is_auto_renew = bool(subscription_id) and metadata.get("is_auto_renew", "true") == "true"
        amount_paid = session.get("amount_total") or 0
        replaced_subscription_id = None

        with self.atomic():
            # Serializes concurrent checkouts for the same user
            get_user_model().objects.select_for_update().filter(pk=user.pk).first()

            if MembershipRecord.objects.filter(stripe_checkout_session_id=session_id).exists():
                logger.info("Checkout session already applied", extra=log_context)
                return ServiceResult.success(None)

            active = (
                MembershipRecord.objects.select_for_update()
                .filter(user=user, status=MembershipStatus.ACTIVE)
                .first()
            )
            if active is not None and active.has_applied_session(session_id):
                logger.info("Checkout session already applied", extra=log_context)
                return ServiceResult.success(active)

            now = timezone.now()
            if active is None:
                record = MembershipRecord.objects.create(
                    user=user,
                    plan=plan,
                    billing_period=billing_period,
                    billing_type=billing_type,
                    stripe_subscription_id=subscription_id,
                    stripe_checkout_session_id=session_id,
                    status=MembershipStatus.ACTIVE,
                    start_date=now,
                    renewal_date=add_billing_period(now, billing_period),
                    is_auto_renew=is_auto_renew,
                    amount_paid=amount_paid,
                    last_payment_at=now,
                )
                logger.info(
                    "Membership created",
                    extra={**log_context, "membership_id": str(record.id), "plan_id": str(plan.id)},
                )
            else:
                record = active
                if record.billing_period != billing_period:
                    record.renewal_date = add_billing_period(
                        max(now, record.renewal_date), billing_period
                    )
                record.upgrade_history = [
                    *record.upgrade_history,
                    {
                        "from_plan_id": str(record.plan_id),
                        "to_plan_id": str(plan.id),
                        "upgraded_at": now.isoformat(),
                        "amount_paid": amount_paid,
                        "session_id": session_id,
                        "from_session_id": record.stripe_checkout_session_id or "",
                    },
                ]
                if (
                    record.stripe_subscription_id
                    and record.stripe_subscription_id != subscription_id
                ):
                    replaced_subscription_id = record.stripe_subscription_id

                record.plan = plan
                record.billing_period = billing_period
                record.billing_type = billing_type
                record.stripe_subscription_id = subscription_id
                record.stripe_checkout_session_id = session_id
                record.is_auto_renew = is_auto_renew
                record.amount_paid = amount_paid
                record.last_payment_at = now
                record.payment_failed_at = None
                record.save()
                logger.info(
                    "Membership upgraded in place",
                    extra={
                        **log_context,
                        "membership_id": str(record.id),
                        "to_plan_id": str(plan.id),
                    },
                )

        if replaced_subscription_id:
            self._stop_replaced_subscription(replaced_subscription_id, record)
        return ServiceResult.success(record)

    def _stop_replaced_subscription(
        self, subscription_id: str, record: MembershipRecord
    ) -> None:
        """
        Stop renewal of the subscription an upgrade replaced.

        Its later subscription events no longer match any record.
        """
        try:
            self.stripe.cancel_subscription_at_period_end(subscription_id)
        except StripeError as e:
            logger.error(
                "Could not stop replaced subscription; cancel it in Stripe",
                extra={
                    "membership_id": str(record.id),
                    "subscription_id": subscription_id,
                    "error_code": e.error_code,
                },
            )

    @staticmethod
    def _get_user(user_id: Any):
        if not user_id or not str(user_id).isdigit():
            return None
        return get_user_model().objects.filter(pk=int(user_id)).first()

    # =========================================================================
    # Invoices and subscriptions (webhook path)
    # =========================================================================

    def record_invoice_paid(self, invoice: dict[str, Any]) -> ServiceResult[MembershipRecord]:
        """
        Extend the renewal anchor for a paid invoice.

        Uses the invoice's line period end when present, otherwise adds one
        billing period. The anchor never moves backwards, and an expired
        record is not revived.
        """
        subscription_id = _invoice_subscription_id(invoice)
        invoice_id = invoice.get("id", "")
        log_context = {"invoice_id": invoice_id, "subscription_id": subscription_id}

        with self.atomic():
            record = self._locked_by_subscription(subscription_id)
            if record is None:
                logger.info("Invoice for unknown subscription", extra=log_context)
                return ServiceResult.success(None)
            if record.last_invoice_id == invoice_id:
                logger.info("Invoice already applied", extra=log_context)
                return ServiceResult.success(record)
            if record.status == MembershipStatus.EXPIRED:
                logger.warning("Paid invoice for expired membership", extra=log_context)
                return ServiceResult.success(record)

            now = timezone.now()
            period_end = _invoice_period_end(invoice)
            if period_end is None:
                period_end = add_billing_period(
                    max(now, record.renewal_date), record.billing_period
                )
            record.renewal_date = max(record.renewal_date, period_end)
            record.last_invoice_id = invoice_id
            record.last_payment_at = now
            record.payment_failed_at = None
            record.save(
                update_fields=[
                    "renewal_date",
                    "last_invoice_id",
                    "last_payment_at",
                    "payment_failed_at",
                    "updated_at",
                ]
            )

        logger.info(
            "Membership renewed",
            extra={
                **log_context,
                "membership_id": str(record.id),
                "renewal_date": record.renewal_date.isoformat(),
            },
        )
        return ServiceResult.success(record)

    def record_invoice_failed(self, invoice: dict[str, Any]) -> ServiceResult[MembershipRecord]:
        """Flag the failure; access continues until the anchor."""
        subscription_id = _invoice_subscription_id(invoice)
        log_context = {"invoice_id": invoice.get("id"), "subscription_id": subscription_id}

        with self.atomic():
            record = self._locked_by_subscription(subscription_id)
            if record is None:
                logger.info("Failed invoice for unknown subscription", extra=log_context)
                return ServiceResult.success(None)
            record.payment_failed_at = timezone.now()
            record.save(update_fields=["payment_failed_at", "updated_at"])

        logger.warning(
            "Membership invoice payment failed",
            extra={**log_context, "membership_id": str(record.id)},
        )
        return ServiceResult.success(record)

    def cancel_subscription(self, subscription: dict[str, Any]) -> ServiceResult[MembershipRecord]:
        """customer.subscription.deleted: active → cancelled, anchor kept."""
        subscription_id = subscription.get("id")

        with self.atomic():
            record = self._locked_by_subscription(subscription_id)
            if record is None or record.status != MembershipStatus.ACTIVE:
                logger.info(
                    "Subscription deletion needs no change",
                    extra={
                        "subscription_id": subscription_id,
                        "status": record.status if record else None,
                    },
                )
                return ServiceResult.success(record)
            record.cancel(reason="subscription_deleted")
            record.save()

        logger.info(
            "Membership cancelled by subscription deletion",
            extra={"subscription_id": subscription_id, "membership_id": str(record.id)},
        )
        return ServiceResult.success(record)

    def apply_subscription_update(
        self, subscription: dict[str, Any]
    ) -> ServiceResult[MembershipRecord]:
        """
        customer.subscription.updated.

        Applies, in order: a price change to another plan, the period end as
        the new anchor, then cancel_at_period_end (cancel or reactivate).
        """
        subscription_id = subscription.get("id")
        log_context = {"subscription_id": subscription_id}

        with self.atomic():
            record = self._locked_by_subscription(subscription_id)
            if record is None or record.status == MembershipStatus.EXPIRED:
                logger.info("Subscription update needs no change", extra=log_context)
                return ServiceResult.success(record)

            now = timezone.now()
            price_id = _subscription_price_id(subscription)
            if price_id:
                self._switch_plan_for_price(record, price_id, now)

            period_end = _subscription_period_end(subscription)
            if period_end is not None:
                record.renewal_date = period_end

            if subscription.get("cancel_at_period_end"):
                if record.status == MembershipStatus.ACTIVE:
                    record.cancel(reason="cancel_at_period_end")
            elif record.status == MembershipStatus.CANCELLED and record.renewal_date > now:
                other_active = (
                    MembershipRecord.objects.filter(
                        user_id=record.user_id, status=MembershipStatus.ACTIVE
                    )
                    .exclude(pk=record.pk)
                    .exists()
                )
                if other_active:
                    logger.warning(
                        "Not reactivating: user has another active membership",
                        extra={**log_context, "membership_id": str(record.id)},
                    )
                else:
                    record.reactivate()
                    record.is_auto_renew = True
            record.save()

        logger.info(
            "Subscription update applied",
            extra={**log_context, "membership_id": str(record.id), "status": record.status},
        )
        return ServiceResult.success(record)

    @staticmethod
    def _switch_plan_for_price(record: MembershipRecord, price_id: str, now: datetime) -> None:
        if price_id in (
            record.plan.stripe_price_id_monthly,
            record.plan.stripe_price_id_yearly,
        ):
            if price_id == record.plan.stripe_price_id_yearly:
                record.billing_period = BillingPeriod.YEARLY
            elif price_id == record.plan.stripe_price_id_monthly:
                record.billing_period = BillingPeriod.MONTHLY
            return

        monthly = MembershipPlan.objects.filter(stripe_price_id_monthly=price_id).first()
        yearly = MembershipPlan.objects.filter(stripe_price_id_yearly=price_id).first()
        new_plan = monthly or yearly
        if new_plan is None:
            logger.warning(
                "Subscription price matches no plan",
                extra={"membership_id": str(record.id), "price_id": price_id},
            )
            return

        record.upgrade_history = [
            *record.upgrade_history,
            {
                "from_plan_id": str(record.plan_id),
                "to_plan_id": str(new_plan.id),
                "upgraded_at": now.isoformat(),
                "amount_paid": 0,
                "session_id": "",
            },
        ]
        record.plan = new_plan
        record.billing_period = BillingPeriod.MONTHLY if monthly else BillingPeriod.YEARLY

    @staticmethod
    def _locked_by_subscription(subscription_id: str | None) -> MembershipRecord | None:
        if not subscription_id:
            return None
        return (
            MembershipRecord.objects.select_for_update()
            .select_related("plan")
            .filter(stripe_subscription_id=subscription_id)
            .order_by("-created_at")
            .first()
        )

    # =========================================================================
    # User actions (client path)
    # =========================================================================

    def cancel_membership(self, user: User, reason: str = "") -> MembershipRecord:
        """
        Cancel the user's active membership.

        Stripe stops renewal at period end first; the record is then
        cancelled and keeps access until its renewal date.

        Raises:
            MembershipNotFoundError: No active membership
            StripeError: Stripe rejected the cancellation
        """
        record = MembershipRecord.objects.filter(
            user=user, status=MembershipStatus.ACTIVE
        ).first()
        if record is None:
            raise MembershipNotFoundError("No active membership to cancel")

        if record.stripe_subscription_id:
            self.stripe.cancel_subscription_at_period_end(record.stripe_subscription_id)

        with self.atomic():
            record = MembershipRecord.objects.select_for_update().get(pk=record.pk)
            if record.status == MembershipStatus.ACTIVE:
                record.cancel(reason=reason or "user_requested")
                record.save()

        logger.info(
            "Membership cancelled by user",
            extra={"user_id": str(user.pk), "membership_id": str(record.id)},
        )
        return record

    def set_auto_renew(self, user: User, is_auto_renew: bool) -> MembershipRecord:
        """
        Raises:
            MembershipNotFoundError: No active membership
        """
        with self.atomic():
            record = (
                MembershipRecord.objects.select_for_update()
                .filter(user=user, status=MembershipStatus.ACTIVE)
                .first()
            )
            if record is None:
                raise MembershipNotFoundError("No active membership")
            record.is_auto_renew = is_auto_renew
            record.save(update_fields=["is_auto_renew", "updated_at"])

        logger.info(
            "Membership auto-renew updated",
            extra={
                "user_id": str(user.pk),
                "membership_id": str(record.id),
                "is_auto_renew": is_auto_renew,
            },
        )
        return record

    # =========================================================================
    # Queries and sweeps
    # =========================================================================

    @staticmethod
    def get_current_membership(user: User) -> MembershipRecord | None:
        return MembershipRecord.objects.current_for(user)

    def expire_due_memberships(self, now: datetime | None = None) -> int:
        """Expire active and cancelled records whose anchor has passed."""
        now = now or timezone.now()
        expired = 0
        with self.atomic():
            for record in MembershipRecord.objects.due_for_expiry(now).select_for_update():
                record.expire()
                record.save()
                expired += 1

        if expired:
            logger.info("Memberships expired", extra={"count": expired})
        return expired
