"""
Views for membership endpoints.

Endpoints:
    POST /api/v1/memberships/checkout/    - Create a Checkout Session
    POST /api/v1/memberships/cancel/      - Cancel the active membership
    POST /api/v1/memberships/auto-renew/  - Toggle auto-renew
    GET  /api/v1/memberships/current/     - Current membership or null
    GET  /api/v1/memberships/plans/       - Active plans (public)

Membership state itself only changes through Stripe webhooks, apart from
user cancellation and the auto-renew flag.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsNotPlatformAdmin
from memberships.models import MembershipPlan
from memberships.serializers import (
    AutoRenewSerializer,
    CancelMembershipSerializer,
    CheckoutRequestSerializer,
    CheckoutResponseSerializer,
    MembershipPlanSerializer,
    MembershipRecordSerializer,
)
from memberships.services import SubscriptionReconciler


class CheckoutSessionView(APIView):
    """
    Start a membership purchase or upgrade.

    URL: /api/v1/memberships/checkout/
    """

    permission_classes = [IsAuthenticated, IsNotPlatformAdmin]

    @extend_schema(
        operation_id="create_membership_checkout",
        summary="Create membership checkout session",
        description=(
            "Create a Stripe Checkout Session for a plan. Recurring purchases "
            "become subscriptions; one-time purchases are charged once. The "
            "membership is created when Stripe confirms the session."
        ),
        request=CheckoutRequestSerializer,
        responses={201: CheckoutResponseSerializer},
        tags=["Memberships"],
    )
    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        session = SubscriptionReconciler().create_checkout_session(
            request.user,
            plan_id=data["plan_id"],
            billing_period=data["billing_period"],
            billing_type=data["billing_type"],
            url=data["url"],
        )
        return Response(
            {"success": True, "data": {"url": session.url, "session_id": session.id}},
            status=status.HTTP_201_CREATED,
        )


class CancelMembershipView(APIView):
    """URL: /api/v1/memberships/cancel/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="cancel_membership",
        summary="Cancel membership",
        description="Stop renewal. Access continues until the renewal date.",
        request=CancelMembershipSerializer,
        responses={200: MembershipRecordSerializer},
        tags=["Memberships"],
    )
    def post(self, request):
        serializer = CancelMembershipSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        record = SubscriptionReconciler().cancel_membership(
            request.user, reason=serializer.validated_data["reason"]
        )
        return Response({"success": True, "data": MembershipRecordSerializer(record).data})


class AutoRenewView(APIView):
    """URL: /api/v1/memberships/auto-renew/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="set_membership_auto_renew",
        summary="Set auto-renew",
        request=AutoRenewSerializer,
        responses={200: MembershipRecordSerializer},
        tags=["Memberships"],
    )
    def post(self, request):
        serializer = AutoRenewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        record = SubscriptionReconciler().set_auto_renew(
            request.user, serializer.validated_data["is_auto_renew"]
        )
        return Response({"success": True, "data": MembershipRecordSerializer(record).data})


class CurrentMembershipView(APIView):
    """URL: /api/v1/memberships/current/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_current_membership",
        summary="Get current membership",
        description="The membership granting access now, or null.",
        responses={200: MembershipRecordSerializer},
        tags=["Memberships"],
    )
    def get(self, request):
        record = SubscriptionReconciler.get_current_membership(request.user)
        data = MembershipRecordSerializer(record).data if record else None
        return Response({"success": True, "data": data})


class PlanListView(APIView):
    """URL: /api/v1/memberships/plans/"""

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        operation_id="list_membership_plans",
        summary="List membership plans",
        parameters=[
            OpenApiParameter(
                name="user_type",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by plan audience (customer/contractor)",
                required=False,
            ),
        ],
        responses={200: MembershipPlanSerializer(many=True)},
        tags=["Memberships"],
    )
    def get(self, request):
        plans = MembershipPlan.objects.filter(is_active=True)
        user_type = request.query_params.get("user_type")
        if user_type:
            plans = plans.filter(user_type=user_type)
        return Response(
            {"success": True, "data": MembershipPlanSerializer(plans, many=True).data}
        )
