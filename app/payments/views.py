"""
DRF views for payments app.

Endpoints:
    POST /api/v1/payments/job/create/          - Create job payment record (customer)
    POST /api/v1/payments/job/deposit/         - Deposit PaymentIntent (customer)
    POST /api/v1/payments/job/prestart/        - Pre-start PaymentIntent (customer)
    POST /api/v1/payments/job/completion/      - Completion PaymentIntent (customer)
    POST /api/v1/payments/job/refund/          - Refund a captured stage (customer/admin)
    POST /api/v1/payments/connect/setup/       - Connect onboarding link (contractor)
    GET  /api/v1/payments/connect/dashboard/   - Express dashboard link (contractor)
    GET  /api/v1/payments/connect/status/      - Connect account status (contractor)
    GET  /api/v1/payments/history/             - Caller's payment history
    GET  /api/v1/payments/<uuid>/              - Job payment detail (party/admin)
    GET  /api/v1/payments/stats/overview/      - Payment stats (admin)

The Stripe webhook endpoint lives in payments.webhooks.views.

Security:
    - All endpoints here require authentication
    - Service-layer errors render through core.exceptions.api_exception_handler
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import (
    IsContractor,
    IsCustomer,
    IsCustomerOrPlatformAdmin,
    IsPlatformAdmin,
)
from payments.serializers import (
    ConnectDashboardResponseSerializer,
    ConnectSetupResponseSerializer,
    ConnectStatusSerializer,
    CreateJobPaymentSerializer,
    JobPaymentDetailSerializer,
    JobPaymentRefundSerializer,
    JobPaymentSerializer,
    PaymentHistoryItemSerializer,
    PaymentHistoryQuerySerializer,
    RefundRequestSerializer,
    RefundResponseSerializer,
    StagePaymentRequestSerializer,
    StagePaymentResponseSerializer,
)
from payments.services import (
    ConnectAccountService,
    JobPaymentOrchestrator,
    PaymentHistoryService,
)
from payments.state_machines import PaymentType


# =============================================================================
# Job payments
# =============================================================================


class CreateJobPaymentView(APIView):
    """
    Create the pending ledger record for an accepted bid.

    POST /api/v1/payments/job/create/
    """

    permission_classes = [IsAuthenticated, IsCustomer]

    @extend_schema(
        operation_id="create_job_payment",
        summary="Create job payment",
        description=(
            "Create the staged payment record for an accepted bid. No money "
            "moves until the deposit is paid."
        ),
        request=CreateJobPaymentSerializer,
        responses={201: JobPaymentSerializer},
        tags=["Payments - Jobs"],
    )
    def post(self, request):
        serializer = CreateJobPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        job_payment = JobPaymentOrchestrator().create_job_payment_record(
            job_request_id=data["job_request_id"],
            customer=request.user,
            contractor=data["contractor"],
            bid_id=data["bid_id"],
            total_amount=data["total_amount"],
            uses_pre_start=data["uses_pre_start"],
        )
        return Response(
            {"success": True, "data": JobPaymentSerializer(job_payment).data},
            status=status.HTTP_201_CREATED,
        )


class StagePaymentView(APIView):
    """
    Base view for stage payments; subclasses set payment_type.

    Returns the PaymentIntent client secret. The stage advances when Stripe
    reports payment_intent.succeeded.
    """

    permission_classes = [IsAuthenticated, IsCustomer]
    payment_type: str = ""

    def post(self, request):
        serializer = StagePaymentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        orchestrator = JobPaymentOrchestrator()
        process = {
            PaymentType.DEPOSIT: orchestrator.process_deposit_payment,
            PaymentType.PRE_START: orchestrator.process_pre_start_payment,
            PaymentType.COMPLETION: orchestrator.process_completion_payment,
        }[self.payment_type]
        result = process(serializer.validated_data["job_payment_id"], request.user)

        return Response(
            {
                "success": True,
                "data": {
                    "client_secret": result.client_secret,
                    "payment_intent_id": result.payment_intent_id,
                    "payment_type": result.payment_type,
                    "job_payment": JobPaymentSerializer(result.job_payment).data,
                },
            }
        )


_stage_schema = dict(
    request=StagePaymentRequestSerializer,
    responses={200: StagePaymentResponseSerializer},
    tags=["Payments - Jobs"],
)


class DepositPaymentView(StagePaymentView):
    """POST /api/v1/payments/job/deposit/"""

    payment_type = PaymentType.DEPOSIT

    @extend_schema(
        operation_id="pay_job_deposit",
        summary="Pay job deposit",
        description="Create the deposit PaymentIntent. Requires stage 'pending'.",
        **_stage_schema,
    )
    def post(self, request):
        return super().post(request)


class PreStartPaymentView(StagePaymentView):
    """POST /api/v1/payments/job/prestart/"""

    payment_type = PaymentType.PRE_START

    @extend_schema(
        operation_id="pay_job_pre_start",
        summary="Pay job pre-start amount",
        description=(
            "Create the pre-start PaymentIntent. Only for three-stage jobs; "
            "requires stage 'deposit_paid'."
        ),
        **_stage_schema,
    )
    def post(self, request):
        return super().post(request)


class CompletionPaymentView(StagePaymentView):
    """POST /api/v1/payments/job/completion/"""

    payment_type = PaymentType.COMPLETION

    @extend_schema(
        operation_id="pay_job_completion",
        summary="Pay job completion amount",
        description=(
            "Create the completion PaymentIntent. Requires 'deposit_paid' on "
            "two-stage jobs and 'pre_start_paid' on three-stage jobs."
        ),
        **_stage_schema,
    )
    def post(self, request):
        return super().post(request)


class RefundView(APIView):
    """POST /api/v1/payments/job/refund/"""

    permission_classes = [IsAuthenticated, IsCustomerOrPlatformAdmin]

    @extend_schema(
        operation_id="refund_job_payment",
        summary="Refund job payment",
        description=(
            "Refund part or all of a captured stage payment. The amount may not "
            "exceed what was captured minus what was already refunded."
        ),
        request=RefundRequestSerializer,
        responses={200: RefundResponseSerializer},
        tags=["Payments - Jobs"],
    )
    def post(self, request):
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        outcome = JobPaymentOrchestrator().process_refund(
            job_payment_id=data["job_payment_id"],
            payment_intent_id=data["payment_intent_id"],
            amount=data["amount"],
            reason=data["reason"],
            requested_by=request.user,
        )
        return Response(
            {
                "success": True,
                "data": {
                    "refund": JobPaymentRefundSerializer(outcome.refund).data,
                    "job_payment": JobPaymentSerializer(outcome.job_payment).data,
                },
            }
        )


# =============================================================================
# Connect
# =============================================================================


class ConnectSetupView(APIView):
    """POST /api/v1/payments/connect/setup/"""

    permission_classes = [IsAuthenticated, IsContractor]

    @extend_schema(
        operation_id="setup_connect_account",
        summary="Start Connect onboarding",
        description=(
            "Create the contractor's Express account on first use and return "
            "a fresh onboarding link."
        ),
        request=None,
        responses={200: ConnectSetupResponseSerializer},
        tags=["Payments - Connect"],
    )
    def post(self, request):
        onboarding = ConnectAccountService().setup_account(request.user)
        return Response(
            {
                "success": True,
                "data": {
                    "account_link": onboarding.account_link_url,
                    "account_id": onboarding.account_id,
                },
            }
        )


class ConnectDashboardView(APIView):
    """GET /api/v1/payments/connect/dashboard/"""

    permission_classes = [IsAuthenticated, IsContractor]

    @extend_schema(
        operation_id="get_connect_dashboard_link",
        summary="Get Express dashboard link",
        responses={200: ConnectDashboardResponseSerializer},
        tags=["Payments - Connect"],
    )
    def get(self, request):
        url = ConnectAccountService().get_dashboard_link(request.user)
        return Response({"success": True, "data": {"dashboard_url": url}})


class ConnectStatusView(APIView):
    """GET /api/v1/payments/connect/status/"""

    permission_classes = [IsAuthenticated, IsContractor]

    @extend_schema(
        operation_id="get_connect_status",
        summary="Get Connect account status",
        description="Refreshed from Stripe on every call.",
        responses={200: ConnectStatusSerializer},
        tags=["Payments - Connect"],
    )
    def get(self, request):
        connect_status = ConnectAccountService().get_status(request.user)
        return Response({"success": True, "data": connect_status.to_dict()})


# =============================================================================
# History, detail and stats
# =============================================================================


class PaymentHistoryView(APIView):
    """GET /api/v1/payments/history/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_payment_history",
        summary="List payment history",
        description=(
            "Job payments (as customer or contractor) and memberships, newest first."
        ),
        parameters=[
            OpenApiParameter(name="page", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(
                name="limit",
                type=int,
                location=OpenApiParameter.QUERY,
                description="Items per page (default 10, max 100)",
            ),
            OpenApiParameter(
                name="status",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Stage or membership status; 'all' for every item",
            ),
            OpenApiParameter(
                name="type",
                type=str,
                location=OpenApiParameter.QUERY,
                description="job, membership or all",
            ),
        ],
        responses={200: PaymentHistoryItemSerializer(many=True)},
        tags=["Payments - History"],
    )
    def get(self, request):
        query = PaymentHistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        items, pagination = PaymentHistoryService.list_history(
            request.user,
            page=params["page"],
            limit=params["limit"],
            status=params["status"],
            history_type=params["type"],
        )
        return Response(
            {
                "success": True,
                "data": PaymentHistoryItemSerializer(items, many=True).data,
                "pagination": pagination,
            }
        )


class PaymentDetailView(APIView):
    """GET /api/v1/payments/<uuid>/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_job_payment",
        summary="Get job payment detail",
        description="Visible to the job's customer, its contractor and admins.",
        responses={200: JobPaymentDetailSerializer},
        tags=["Payments - History"],
    )
    def get(self, request, payment_id):
        job_payment = PaymentHistoryService.get_detail(request.user, payment_id)
        return Response({"success": True, "data": JobPaymentDetailSerializer(job_payment).data})


class PaymentStatsView(APIView):
    """GET /api/v1/payments/stats/overview/"""

    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    @extend_schema(
        operation_id="get_payment_stats",
        summary="Get payment stats",
        tags=["Payments - History"],
    )
    def get(self, request):
        return Response({"success": True, "data": PaymentHistoryService.get_stats()})
