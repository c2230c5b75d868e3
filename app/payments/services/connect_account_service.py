"""
Stripe Connect onboarding and status for contractors.

Each contractor has one Express account. Its status is re-read from
Stripe on every status query and on account.updated webhooks, then mapped
to ConnectAccountStatus:

    requirements.disabled_reason starts with "rejected" → rejected
    any other disabled_reason                          → disabled
    charges_enabled and payouts_enabled                → active
    otherwise                                          → pending

Usage:
    from payments.services import ConnectAccountService

    service = ConnectAccountService()
    onboarding = service.setup_account(request.user)
    return {"account_link": onboarding.account_link_url, ...}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError
from django.utils import timezone

from core.exceptions import PermissionDeniedError
from core.services import BaseService, ServiceResult
from payments.adapters import (
    ConnectAccountResult,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import PaymentNotFoundError
from payments.models import ConnectAccount
from payments.state_machines import ConnectAccountStatus

if TYPE_CHECKING:
    from authentication.models import User


logger = logging.getLogger(__name__)


@dataclass
class ConnectOnboarding:
    account_id: str
    account_link_url: str


@dataclass
class ConnectStatus:
    """Mapped Connect status returned to the contractor."""

    has_connect_account: bool
    status: str
    account_id: str | None = None
    charges_enabled: bool = False
    payouts_enabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_connect_account": self.has_connect_account,
            "status": self.status,
            "account_id": self.account_id,
            "charges_enabled": self.charges_enabled,
            "payouts_enabled": self.payouts_enabled,
        }


def map_account_status(
    charges_enabled: bool,
    payouts_enabled: bool,
    disabled_reason: str | None,
) -> str:
    if disabled_reason:
        if disabled_reason.startswith("rejected"):
            return ConnectAccountStatus.REJECTED
        return ConnectAccountStatus.DISABLED
    if charges_enabled and payouts_enabled:
        return ConnectAccountStatus.ACTIVE
    return ConnectAccountStatus.PENDING


class ConnectAccountService(BaseService):
    """Creates, links and syncs contractor Connect accounts."""

    def __init__(self, stripe_adapter: type | None = None):
        self.stripe = stripe_adapter or StripeAdapter

    def setup_account(self, contractor: User) -> ConnectOnboarding:
        """
        Return a fresh onboarding link, creating the account on first use.

        The account id is persisted before the link is requested, so a
        failed link call never loses the account.

        Raises:
            PermissionDeniedError: User is not a contractor
            StripeError: Stripe rejected a request
        """
        self._require_contractor(contractor)

        connect_account = ConnectAccount.objects.filter(contractor=contractor).first()
        if connect_account is None:
            connect_account = self._create_account(contractor)

        link = self.stripe.create_account_link(
            connect_account.stripe_account_id,
            refresh_url=f"{settings.FRONTEND_URL}/contractor/connect/refresh",
            return_url=f"{settings.FRONTEND_URL}/contractor/connect/success",
        )

        logger.info(
            "Connect onboarding link created",
            extra={
                "user_id": str(contractor.pk),
                "account_id": connect_account.stripe_account_id,
            },
        )
        return ConnectOnboarding(
            account_id=connect_account.stripe_account_id,
            account_link_url=link.url,
        )

    def _create_account(self, contractor: User) -> ConnectAccount:
        result = self.stripe.create_connect_account(
            email=contractor.email,
            idempotency_key=IdempotencyKeyGenerator.generate(
                operation="create_connect_account",
                entity_id=contractor.pk,
            ),
            metadata={"user_id": str(contractor.pk)},
        )

        try:
            with self.atomic():
                connect_account = ConnectAccount.objects.create(
                    contractor=contractor,
                    stripe_account_id=result.id,
                )
        except IntegrityError:
            # Concurrent setup; the idempotency key returned the same account
            connect_account = ConnectAccount.objects.get(contractor=contractor)

        self._apply_result(connect_account, result)
        logger.info(
            "Connect account created",
            extra={"user_id": str(contractor.pk), "account_id": result.id},
        )
        return connect_account

    def get_status(self, contractor: User) -> ConnectStatus:
        """
        Query Stripe for the contractor's account and persist the mapping.

        Raises:
            PermissionDeniedError: User is not a contractor
            StripeError: Stripe rejected the request
        """
        self._require_contractor(contractor)

        connect_account = ConnectAccount.objects.filter(contractor=contractor).first()
        if connect_account is None:
            return ConnectStatus(
                has_connect_account=False,
                status=ConnectAccountStatus.PENDING,
            )

        result = self.stripe.retrieve_account(connect_account.stripe_account_id)
        self._apply_result(connect_account, result)

        return ConnectStatus(
            has_connect_account=True,
            status=connect_account.status,
            account_id=connect_account.stripe_account_id,
            charges_enabled=connect_account.charges_enabled,
            payouts_enabled=connect_account.payouts_enabled,
        )

    def get_dashboard_link(self, contractor: User) -> str:
        """
        Express dashboard login URL.

        Raises:
            PaymentNotFoundError: Contractor has no Connect account
        """
        self._require_contractor(contractor)

        connect_account = ConnectAccount.objects.filter(contractor=contractor).first()
        if connect_account is None:
            raise PaymentNotFoundError(
                "No Connect account found. Complete onboarding first.",
                error_code="CONNECT_ACCOUNT_NOT_FOUND",
            )
        return self.stripe.create_login_link(connect_account.stripe_account_id).url

    def sync_from_account(self, account: dict[str, Any]) -> ServiceResult[ConnectAccount]:
        """
        Apply an account.updated payload.

        Accounts we do not track are acknowledged with a successful
        result carrying None.
        """
        account_id = account.get("id")
        connect_account = ConnectAccount.objects.filter(
            stripe_account_id=account_id
        ).first()
        if connect_account is None:
            logger.info(
                "account.updated for unknown Connect account",
                extra={"account_id": account_id},
            )
            return ServiceResult.success(None)

        requirements = account.get("requirements") or {}
        self._apply_result(
            connect_account,
            ConnectAccountResult(
                id=account_id,
                charges_enabled=bool(account.get("charges_enabled")),
                payouts_enabled=bool(account.get("payouts_enabled")),
                details_submitted=bool(account.get("details_submitted")),
                disabled_reason=requirements.get("disabled_reason"),
            ),
        )
        return ServiceResult.success(connect_account)

    def _apply_result(
        self, connect_account: ConnectAccount, result: ConnectAccountResult
    ) -> None:
        previous_status = connect_account.status
        connect_account.charges_enabled = result.charges_enabled
        connect_account.payouts_enabled = result.payouts_enabled
        connect_account.details_submitted = result.details_submitted
        connect_account.disabled_reason = result.disabled_reason or ""
        connect_account.status = map_account_status(
            result.charges_enabled,
            result.payouts_enabled,
            result.disabled_reason,
        )
        connect_account.last_synced_at = timezone.now()
        connect_account.save(
            update_fields=[
                "charges_enabled",
                "payouts_enabled",
                "details_submitted",
                "disabled_reason",
                "status",
                "last_synced_at",
                "updated_at",
            ]
        )

        if previous_status != connect_account.status:
            logger.info(
                "Connect account status changed",
                extra={
                    "account_id": connect_account.stripe_account_id,
                    "from_status": previous_status,
                    "to_status": connect_account.status,
                },
            )

    @staticmethod
    def _require_contractor(user: User) -> None:
        if not user.is_contractor:
            raise PermissionDeniedError("Only contractors can manage Connect accounts")
