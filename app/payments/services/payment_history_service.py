"""
Read side of payments: history, detail and admin stats.

History merges the caller's job payments (as customer or contractor) with
their membership records into one newest-first list before paginating.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from django.db.models import Count, Q, Sum

from core.exceptions import PermissionDeniedError
from core.helpers import paginate_sequence
from core.services import BaseService
from memberships.models import MembershipRecord
from payments.exceptions import PaymentNotFoundError
from payments.models import JobPayment
from payments.state_machines import PaymentStage

if TYPE_CHECKING:
    from authentication.models import User


logger = logging.getLogger(__name__)

HISTORY_TYPE_JOB = "job"
HISTORY_TYPE_MEMBERSHIP = "membership"
HISTORY_TYPES = (HISTORY_TYPE_JOB, HISTORY_TYPE_MEMBERSHIP)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class PaymentHistoryService(BaseService):
    """Payment history, detail and stats queries."""

    @classmethod
    def list_history(
        cls,
        user: User,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        status: str | None = None,
        history_type: str | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """
        Return one page of the user's payment history.

        Args:
            status: Item status to keep (stage or membership status);
                None or "all" keeps everything
            history_type: "job", "membership", or None/"all"

        Returns:
            (items, pagination)
        """
        limit = min(max(1, limit), MAX_PAGE_SIZE)
        page = max(1, page)
        if status == "all":
            status = None

        items: list[dict[str, Any]] = []
        if history_type in (None, "all", HISTORY_TYPE_JOB):
            items.extend(cls._job_items(user, status))
        if history_type in (None, "all", HISTORY_TYPE_MEMBERSHIP):
            items.extend(cls._membership_items(user, status))

        items.sort(key=lambda item: item["created_at"], reverse=True)
        return paginate_sequence(items, page, limit)

    @staticmethod
    def _job_items(user: User, status: str | None) -> list[dict[str, Any]]:
        queryset = JobPayment.objects.filter(Q(customer=user) | Q(contractor=user))
        if status:
            queryset = queryset.filter(stage=status)
        return [
            {
                "id": str(job_payment.id),
                "type": HISTORY_TYPE_JOB,
                "status": job_payment.stage,
                "amount": job_payment.total_amount,
                "currency": job_payment.currency,
                "created_at": job_payment.created_at,
                "purpose": "Job payment",
                "job_request_id": str(job_payment.job_request_id),
                "role": "customer" if job_payment.customer_id == user.pk else "contractor",
            }
            for job_payment in queryset
        ]

    @staticmethod
    def _membership_items(user: User, status: str | None) -> list[dict[str, Any]]:
        queryset = MembershipRecord.objects.filter(user=user).select_related("plan")
        if status:
            queryset = queryset.filter(status=status)
        return [
            {
                "id": str(record.id),
                "type": HISTORY_TYPE_MEMBERSHIP,
                "status": record.status,
                "amount": record.period_price,
                "currency": record.currency,
                "created_at": record.created_at,
                "purpose": f"{record.plan.name} membership ({record.billing_period})",
            }
            for record in queryset
        ]

    @staticmethod
    def get_detail(user: User, job_payment_id: uuid.UUID) -> JobPayment:
        """
        Raises:
            PaymentNotFoundError: Unknown job payment
            PermissionDeniedError: Caller is not a party or an admin
        """
        job_payment = (
            JobPayment.objects.select_related("customer", "contractor")
            .prefetch_related("refunds")
            .filter(id=job_payment_id)
            .first()
        )
        if job_payment is None:
            raise PaymentNotFoundError(
                "Job payment not found",
                details={"job_payment_id": str(job_payment_id)},
            )
        if not (
            user.is_platform_admin
            or user.pk in (job_payment.customer_id, job_payment.contractor_id)
        ):
            raise PermissionDeniedError("You do not have access to this payment")
        return job_payment

    @staticmethod
    def get_stats() -> dict[str, Any]:
        """Counts and sums per stage plus overall captured/refunded totals."""
        by_stage = {
            stage: {"count": 0, "total_amount": 0} for stage in PaymentStage.values
        }
        for row in JobPayment.objects.values("stage").annotate(
            count=Count("id"), total_amount=Sum("total_amount")
        ):
            by_stage[row["stage"]] = {
                "count": row["count"],
                "total_amount": row["total_amount"] or 0,
            }

        totals = JobPayment.objects.aggregate(
            count=Count("id"),
            total_amount=Sum("total_amount"),
            total_captured=Sum("captured_amount"),
            total_refunded=Sum("refunded_amount"),
            total_platform_fees=Sum("platform_fee_amount"),
        )
        memberships = {
            row["status"]: row["count"]
            for row in MembershipRecord.objects.values("status").annotate(
                count=Count("id")
            )
        }

        return {
            "job_payments": {
                "count": totals["count"],
                "total_amount": totals["total_amount"] or 0,
                "total_captured": totals["total_captured"] or 0,
                "total_refunded": totals["total_refunded"] or 0,
                "total_platform_fees": totals["total_platform_fees"] or 0,
                "by_stage": by_stage,
            },
            "memberships": memberships,
        }
