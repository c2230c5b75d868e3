"""
Staged payment orchestrator for marketplace jobs.

The orchestrator owns every change to a JobPayment:

    create_job_payment_record     pending record with the stage split
    process_*_payment             PaymentIntent for one stage (client path)
    confirm_stage_payment         stage advancement (webhook path)
    record_stage_failure          failure marker (webhook path)
    process_refund                Stripe refund + refund row + stage

Client-path methods validate ownership and the stage against the transition
table before any Stripe call and raise domain exceptions; the DRF exception
handler renders them. A Stripe failure propagates as a StripeError subclass
and leaves the ledger unchanged.

Webhook-path methods never raise for "nothing to do": an unknown intent or
a stage that already moved on is a logged no-op.

Usage:
    from payments.services import JobPaymentOrchestrator

    orchestrator = JobPaymentOrchestrator()
    intent = orchestrator.process_deposit_payment(job_payment_id, request.user)
    return {"client_secret": intent.client_secret, ...}
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import F, Q, Sum
from django.utils import timezone

from core.exceptions import ConflictError, PermissionDeniedError
from core.services import BaseService
from memberships.models import MembershipRecord, PlanTier
from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import (
    InvalidStageTransitionError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.models import JobPayment, JobPaymentRefund
from payments.services.amounts import (
    calculate_platform_fee,
    calculate_refund_fees,
    split_job_amount,
)
from payments.services.customer_service import StripeCustomerService
from payments.state_machines import (
    PaymentType,
    get_stage_transition,
    is_refundable,
    refund_target_stage,
    stage_fields,
)

if TYPE_CHECKING:
    from authentication.models import User


logger = logging.getLogger(__name__)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class StagePaymentIntent:
    """
    Result of requesting a stage payment.

    Attributes:
        job_payment: Record with the new intent in its stage slot
        payment_type: deposit, prestart or completion
        payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
        client_secret: Secret the client confirms the payment with
    """

    job_payment: JobPayment
    payment_type: str
    payment_intent_id: str
    client_secret: str | None


@dataclass
class StageConfirmation:
    """
    Result of applying a payment_intent.succeeded event.

    advanced is False for unknown intents and for stages that were
    already past the transition.
    """

    job_payment: JobPayment | None
    payment_type: str | None = None
    advanced: bool = False


@dataclass
class RefundOutcome:
    """Result of a processed refund."""

    refund: JobPaymentRefund
    job_payment: JobPayment


# =============================================================================
# Orchestrator
# =============================================================================


class JobPaymentOrchestrator(BaseService):
    """
    Coordinates the ledger and Stripe for staged job payments.

    Stage changes are compare-and-set UPDATEs filtered on the expected
    source stage: two concurrent confirmations of the same intent produce
    exactly one transition and one captured amount increment.
    """

    def __init__(self, stripe_adapter: type | None = None):
        """
        Args:
            stripe_adapter: Adapter class to call Stripe through.
                Defaults to StripeAdapter.
        """
        self.stripe = stripe_adapter or StripeAdapter
        self.customers = StripeCustomerService(stripe_adapter=self.stripe)

    # =========================================================================
    # Record creation
    # =========================================================================

    def create_job_payment_record(
        self,
        job_request_id: uuid.UUID,
        customer: User,
        contractor: User,
        bid_id: uuid.UUID,
        total_amount: int,
        uses_pre_start: bool = False,
    ) -> JobPayment:
        """
        Create the pending ledger record for an accepted bid.

        No Stripe call is made. The bid's acceptability is asserted by the
        caller.

        Raises:
            PaymentValidationError: Bad amount or parties
            ConflictError: A record already exists for the bid
        """
        if isinstance(total_amount, bool) or not isinstance(total_amount, int):
            raise PaymentValidationError(
                "Total amount must be an integer number of cents",
                error_code="INVALID_AMOUNT",
                details={"total_amount": total_amount},
            )
        if total_amount <= 0:
            raise PaymentValidationError(
                "Total amount must be positive",
                error_code="INVALID_AMOUNT",
                details={"total_amount": total_amount},
            )
        if contractor.pk == customer.pk:
            raise PaymentValidationError(
                "Customer and contractor must be different users",
                error_code="INVALID_PARTIES",
            )
        if not contractor.is_contractor:
            raise PaymentValidationError(
                "Payee must be a contractor",
                error_code="INVALID_PARTIES",
                details={"contractor_id": str(contractor.pk)},
            )
        if JobPayment.objects.filter(bid_id=bid_id).exists():
            raise ConflictError(
                "A job payment already exists for this bid",
                error_code="DUPLICATE_JOB_PAYMENT",
                details={"bid_id": str(bid_id)},
            )

        split = split_job_amount(total_amount, uses_pre_start=uses_pre_start)
        fee_percent = self._platform_fee_percent(customer)

        job_payment = JobPayment.objects.create(
            job_request_id=job_request_id,
            bid_id=bid_id,
            customer=customer,
            contractor=contractor,
            total_amount=total_amount,
            deposit_amount=split.deposit,
            pre_start_amount=split.pre_start,
            completion_amount=split.completion,
            platform_fee_percent=fee_percent,
            platform_fee_amount=calculate_platform_fee(total_amount, fee_percent),
            uses_pre_start=uses_pre_start,
        )

        logger.info(
            "Job payment record created",
            extra={
                "job_payment_id": str(job_payment.id),
                "job_request_id": str(job_request_id),
                "total_amount": total_amount,
                "uses_pre_start": uses_pre_start,
                "platform_fee_percent": str(fee_percent),
            },
        )
        return job_payment

    def _platform_fee_percent(self, customer: User) -> Decimal:
        default = Decimal(str(settings.PLATFORM_FEE_PERCENT))
        membership = MembershipRecord.objects.current_for(customer)
        if membership is None:
            return default
        if membership.plan.tier == PlanTier.PREMIUM:
            return Decimal("0")
        if membership.plan.platform_fee_percent is not None:
            return membership.plan.platform_fee_percent
        return default

    # =========================================================================
    # Stage payments (client path)
    # =========================================================================

    def process_deposit_payment(
        self, job_payment_id: uuid.UUID, customer: User
    ) -> StagePaymentIntent:
        return self._process_stage_payment(job_payment_id, customer, PaymentType.DEPOSIT)

    def process_pre_start_payment(
        self, job_payment_id: uuid.UUID, customer: User
    ) -> StagePaymentIntent:
        return self._process_stage_payment(
            job_payment_id, customer, PaymentType.PRE_START
        )

    def process_completion_payment(
        self, job_payment_id: uuid.UUID, customer: User
    ) -> StagePaymentIntent:
        return self._process_stage_payment(
            job_payment_id, customer, PaymentType.COMPLETION
        )

    def _process_stage_payment(
        self,
        job_payment_id: uuid.UUID,
        customer: User,
        payment_type: str,
    ) -> StagePaymentIntent:
        """
        Create the PaymentIntent for one stage.

        The stage does not advance here; payment_intent.succeeded does that.

        Raises:
            PaymentNotFoundError: Unknown job payment
            PermissionDeniedError: Caller is not the record's customer
            InvalidStageTransitionError: Stage does not allow this payment
            StripeError: Stripe rejected the request
        """
        job_payment = self.get_job_payment(job_payment_id)

        if job_payment.customer_id != customer.pk:
            raise PermissionDeniedError(
                "Only the job's customer can pay for it",
                details={"job_payment_id": str(job_payment.id)},
            )

        transition = self._require_transition(job_payment, payment_type)
        intent_field, _, _ = stage_fields(payment_type)
        amount = job_payment.stage_amount(payment_type)

        # Keyed on the slot's current intent: a double submit reuses one
        # intent, a deliberate re-request gets a fresh one.
        idempotency_key = IdempotencyKeyGenerator.generate(
            operation=f"job_{payment_type}",
            entity_id=job_payment.id,
            attempt=getattr(job_payment, intent_field) or "initial",
        )

        intent = self.stripe.create_payment_intent(
            CreatePaymentIntentParams(
                amount_cents=amount,
                currency=job_payment.currency,
                idempotency_key=idempotency_key,
                customer_id=self.customers.get_or_create_customer_id(customer),
                metadata={
                    "job_payment_id": str(job_payment.id),
                    "job_request_id": str(job_payment.job_request_id),
                    "payment_type": payment_type,
                },
                description=f"Job {job_payment.job_request_id} {payment_type} payment",
            )
        )

        updated = JobPayment.objects.filter(
            pk=job_payment.pk,
            stage=transition.source,
        ).update(
            **{intent_field: intent.id},
            last_payment_error="",
            last_payment_error_at=None,
            updated_at=timezone.now(),
        )
        if not updated:
            job_payment.refresh_from_db(fields=["stage"])
            logger.warning(
                "Stage changed while creating payment intent",
                extra={
                    "job_payment_id": str(job_payment.id),
                    "payment_intent_id": intent.id,
                    "stage": job_payment.stage,
                },
            )
            raise self._stage_error(job_payment, payment_type, transition.source)

        job_payment.refresh_from_db()
        logger.info(
            "Stage payment intent created",
            extra={
                "job_payment_id": str(job_payment.id),
                "payment_type": payment_type,
                "payment_intent_id": intent.id,
                "amount": amount,
            },
        )
        return StagePaymentIntent(
            job_payment=job_payment,
            payment_type=payment_type,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
        )

    def _require_transition(self, job_payment: JobPayment, payment_type: str):
        transition = get_stage_transition(payment_type, job_payment.uses_pre_start)
        if transition is None:
            logger.warning(
                "Stage payment not in the job's payment plan",
                extra={
                    "job_payment_id": str(job_payment.id),
                    "payment_type": payment_type,
                },
            )
            raise InvalidStageTransitionError(
                f"{PaymentType(payment_type).label} payment is not part of this job's payment plan",
                details={
                    "current_stage": job_payment.stage,
                    "payment_type": payment_type,
                    "uses_pre_start": job_payment.uses_pre_start,
                },
            )
        if job_payment.stage != transition.source:
            logger.warning(
                "Stage guard rejected payment",
                extra={
                    "job_payment_id": str(job_payment.id),
                    "payment_type": payment_type,
                    "stage": job_payment.stage,
                },
            )
            raise self._stage_error(job_payment, payment_type, transition.source)
        return transition

    @staticmethod
    def _stage_error(
        job_payment: JobPayment, payment_type: str, required_stage: str
    ) -> InvalidStageTransitionError:
        return InvalidStageTransitionError(
            f"{PaymentType(payment_type).label} payment requires stage '{required_stage}'",
            details={
                "current_stage": job_payment.stage,
                "required_stage": required_stage,
                "payment_type": payment_type,
            },
        )

    # =========================================================================
    # Webhook path
    # =========================================================================

    def confirm_stage_payment(
        self,
        payment_intent_id: str,
        amount_received: int | None = None,
    ) -> StageConfirmation:
        """
        Advance the stage paid by payment_intent_id.

        Only the intent currently in the stage slot advances the record,
        and only from the transition's source stage. Everything else is a
        no-op.
        """
        job_payment = self._find_by_intent(payment_intent_id)
        if job_payment is None:
            logger.info(
                "No job payment for payment intent",
                extra={"payment_intent_id": payment_intent_id},
            )
            return StageConfirmation(job_payment=None)

        payment_type = job_payment.payment_type_for_intent(payment_intent_id)
        transition = get_stage_transition(payment_type, job_payment.uses_pre_start)
        log_context = {
            "job_payment_id": str(job_payment.id),
            "payment_intent_id": payment_intent_id,
            "payment_type": payment_type,
        }
        if transition is None:
            logger.warning("Intent does not match the job's payment plan", extra=log_context)
            return StageConfirmation(job_payment=job_payment, payment_type=payment_type)

        intent_field, paid_at_field, _ = stage_fields(payment_type)
        amount = job_payment.stage_amount(payment_type)
        if amount_received is not None and amount_received != amount:
            logger.warning(
                "Amount received differs from stage amount",
                extra={**log_context, "amount_received": amount_received, "amount": amount},
            )

        now = timezone.now()
        advanced = JobPayment.objects.filter(
            pk=job_payment.pk,
            stage=transition.source,
            **{intent_field: payment_intent_id},
        ).update(
            stage=transition.target,
            captured_amount=F("captured_amount") + amount,
            last_payment_error="",
            last_payment_error_at=None,
            updated_at=now,
            **{paid_at_field: now},
        )

        job_payment.refresh_from_db()
        if advanced:
            logger.info(
                "Stage payment confirmed",
                extra={**log_context, "stage": job_payment.stage, "amount": amount},
            )
        elif (
            job_payment.payment_type_for_intent(payment_intent_id) == payment_type
            and not job_payment.is_stage_paid(payment_type)
        ):
            logger.error(
                "Captured stage payment could not be applied",
                extra={**log_context, "stage": job_payment.stage, "amount": amount},
            )
        else:
            logger.info(
                "Stage already past confirmation, ignoring",
                extra={**log_context, "stage": job_payment.stage},
            )
        return StageConfirmation(
            job_payment=job_payment,
            payment_type=payment_type,
            advanced=bool(advanced),
        )

    def record_stage_failure(
        self, payment_intent_id: str, message: str
    ) -> JobPayment | None:
        """
        Store the failure marker for the client. The stage is unchanged and
        nothing is retried.
        """
        job_payment = self._find_by_intent(payment_intent_id)
        if job_payment is None:
            logger.info(
                "No job payment for failed payment intent",
                extra={"payment_intent_id": payment_intent_id},
            )
            return None

        payment_type = job_payment.payment_type_for_intent(payment_intent_id)
        intent_field, _, _ = stage_fields(payment_type)
        now = timezone.now()
        JobPayment.objects.filter(
            pk=job_payment.pk,
            **{intent_field: payment_intent_id},
        ).update(
            last_payment_error=message or "Payment failed",
            last_payment_error_at=now,
            updated_at=now,
        )
        job_payment.refresh_from_db()

        logger.warning(
            "Stage payment failed",
            extra={
                "job_payment_id": str(job_payment.id),
                "payment_intent_id": payment_intent_id,
                "payment_type": payment_type,
                "stage": job_payment.stage,
            },
        )
        return job_payment

    # =========================================================================
    # Refunds
    # =========================================================================

    def process_refund(
        self,
        job_payment_id: uuid.UUID,
        payment_intent_id: str,
        amount: int,
        reason: str,
        requested_by: User,
    ) -> RefundOutcome:
        """
        Refund part of a captured stage payment.

        Guards run before the Stripe call and again under a row lock
        before the refund is recorded.

        Raises:
            PaymentNotFoundError: Unknown job payment
            PermissionDeniedError: Requester is neither customer nor admin
            PaymentValidationError: Bad amount, uncaptured intent, amount
                above the refundable balance
            InvalidStageTransitionError: Stage is not refundable
            StripeError: Stripe rejected the refund
        """
        job_payment = self.get_job_payment(job_payment_id)

        if not (
            requested_by.is_platform_admin or job_payment.customer_id == requested_by.pk
        ):
            raise PermissionDeniedError(
                "Only the job's customer or an admin can request a refund",
                details={"job_payment_id": str(job_payment.id)},
            )

        self._check_refund(job_payment, payment_intent_id, amount)
        payment_type = job_payment.payment_type_for_intent(payment_intent_id)

        idempotency_key = IdempotencyKeyGenerator.generate(
            operation="job_refund",
            entity_id=job_payment.id,
            attempt=f"{payment_intent_id}-{job_payment.refunded_amount}-{amount}",
        )
        stripe_refund = self.stripe.create_refund(
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
            amount_cents=amount,
            metadata={
                "job_payment_id": str(job_payment.id),
                "payment_type": payment_type,
                "reason": (reason or "")[:500],
            },
        )

        with self.atomic():
            locked = JobPayment.objects.select_for_update().get(pk=job_payment.pk)

            existing = JobPaymentRefund.objects.filter(
                stripe_refund_id=stripe_refund.id
            ).first()
            if existing is not None:
                logger.info(
                    "Refund already recorded",
                    extra={
                        "job_payment_id": str(locked.id),
                        "stripe_refund_id": stripe_refund.id,
                    },
                )
                return RefundOutcome(refund=existing, job_payment=locked)

            try:
                self._check_refund(locked, payment_intent_id, amount)
            except (InvalidStageTransitionError, PaymentValidationError):
                logger.error(
                    "Refund issued by Stripe but rejected by ledger guard",
                    extra={
                        "job_payment_id": str(locked.id),
                        "stripe_refund_id": stripe_refund.id,
                        "amount": amount,
                    },
                )
                raise

            fees = calculate_refund_fees(amount)
            refund = JobPaymentRefund.objects.create(
                job_payment=locked,
                payment_intent_id=payment_intent_id,
                amount=amount,
                admin_fee=fees.admin_fee,
                stripe_fee=fees.stripe_fee,
                net_amount=fees.net_amount,
                stripe_refund_id=stripe_refund.id,
                reason=reason or "",
                requested_by=requested_by,
                processed_at=timezone.now(),
            )

            locked.refunded_amount += amount
            locked.stage = refund_target_stage(
                locked.captured_amount, locked.refunded_amount
            )
            locked.save(update_fields=["refunded_amount", "stage", "updated_at"])

        logger.info(
            "Refund processed",
            extra={
                "job_payment_id": str(locked.id),
                "payment_intent_id": payment_intent_id,
                "stripe_refund_id": stripe_refund.id,
                "amount": amount,
                "stage": locked.stage,
            },
        )
        return RefundOutcome(refund=refund, job_payment=locked)

    def _check_refund(
        self, job_payment: JobPayment, payment_intent_id: str, amount: int
    ) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise PaymentValidationError(
                "Refund amount must be a positive integer number of cents",
                error_code="INVALID_AMOUNT",
                details={"amount": amount},
            )

        payment_type = job_payment.payment_type_for_intent(payment_intent_id)
        if payment_type is None or not job_payment.is_stage_paid(payment_type):
            raise PaymentValidationError(
                "Payment intent was not captured for this job payment",
                error_code="INTENT_NOT_CAPTURED",
                details={"payment_intent_id": payment_intent_id},
            )

        if not is_refundable(job_payment.stage):
            raise InvalidStageTransitionError(
                f"Refunds are not allowed in stage '{job_payment.stage}'",
                details={"current_stage": job_payment.stage, "operation": "refund"},
            )

        outstanding = job_payment.outstanding_intent_types()
        if outstanding:
            raise InvalidStageTransitionError(
                "Refunds are not allowed while a stage payment is in progress",
                details={
                    "current_stage": job_payment.stage,
                    "operation": "refund",
                    "pending_payment_types": outstanding,
                },
            )

        if amount > job_payment.refundable_amount:
            raise PaymentValidationError(
                "Refund amount exceeds the refundable balance",
                error_code="REFUND_EXCEEDS_BALANCE",
                details={
                    "amount": amount,
                    "refundable_amount": job_payment.refundable_amount,
                },
            )

        already_refunded = (
            job_payment.refunds.filter(payment_intent_id=payment_intent_id).aggregate(
                total=Sum("amount")
            )["total"]
            or 0
        )
        intent_balance = job_payment.stage_amount(payment_type) - already_refunded
        if amount > intent_balance:
            raise PaymentValidationError(
                "Refund amount exceeds what remains on this payment intent",
                error_code="REFUND_EXCEEDS_BALANCE",
                details={"amount": amount, "intent_refundable_amount": intent_balance},
            )

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def get_job_payment(job_payment_id: uuid.UUID) -> JobPayment:
        job_payment = JobPayment.objects.filter(id=job_payment_id).first()
        if job_payment is None:
            raise PaymentNotFoundError(
                "Job payment not found",
                details={"job_payment_id": str(job_payment_id)},
            )
        return job_payment

    @staticmethod
    def _find_by_intent(payment_intent_id: str) -> JobPayment | None:
        if not payment_intent_id:
            return None
        return JobPayment.objects.filter(
            Q(deposit_intent_id=payment_intent_id)
            | Q(pre_start_intent_id=payment_intent_id)
            | Q(completion_intent_id=payment_intent_id)
        ).first()
