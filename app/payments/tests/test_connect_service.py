"""
Tests for ConnectAccountService.
"""

import pytest

from core.exceptions import PermissionDeniedError
from payments.adapters import ConnectAccountResult
from payments.exceptions import PaymentNotFoundError, StripeAPIUnavailableError
from payments.models import ConnectAccount
from payments.services import map_account_status
from payments.state_machines import ConnectAccountStatus


class TestMapAccountStatus:
    """Tests for the Stripe account → status mapping."""

    @pytest.mark.parametrize(
        "charges, payouts, reason, expected",
        [
            (True, True, None, ConnectAccountStatus.ACTIVE),
            (True, False, None, ConnectAccountStatus.PENDING),
            (False, False, None, ConnectAccountStatus.PENDING),
            (False, False, "rejected.fraud", ConnectAccountStatus.REJECTED),
            (True, True, "rejected.terms_of_service", ConnectAccountStatus.REJECTED),
            (False, False, "requirements.past_due", ConnectAccountStatus.DISABLED),
        ],
    )
    def test_mapping(self, charges, payouts, reason, expected):
        assert map_account_status(charges, payouts, reason) == expected


@pytest.mark.django_db
class TestSetupAccount:
    def test_creates_account_and_link(self, connect_service, contractor, stripe_adapter):
        """Should create the Express account once and return an onboarding link."""
        onboarding = connect_service.setup_account(contractor)

        assert onboarding.account_id == "acct_new_123"
        assert onboarding.account_link_url.startswith("https://connect.stripe.com/")
        account = ConnectAccount.objects.get(contractor=contractor)
        assert account.stripe_account_id == "acct_new_123"
        assert account.status == ConnectAccountStatus.PENDING

        link_kwargs = stripe_adapter.create_account_link.call_args.kwargs
        assert link_kwargs["refresh_url"] == "http://localhost:3000/contractor/connect/refresh"
        assert link_kwargs["return_url"] == "http://localhost:3000/contractor/connect/success"

    def test_reuses_existing_account(self, connect_service, connect_account, stripe_adapter):
        """Should only issue a fresh link for a contractor who already has an account."""
        onboarding = connect_service.setup_account(connect_account.contractor)

        assert onboarding.account_id == connect_account.stripe_account_id
        assert not stripe_adapter.create_connect_account.called
        assert ConnectAccount.objects.count() == 1

    def test_account_kept_when_link_fails(self, connect_service, contractor, stripe_adapter):
        stripe_adapter.create_account_link.side_effect = StripeAPIUnavailableError("down")

        with pytest.raises(StripeAPIUnavailableError):
            connect_service.setup_account(contractor)

        assert ConnectAccount.objects.filter(contractor=contractor).exists()

    def test_customer_rejected(self, connect_service, customer, stripe_adapter):
        with pytest.raises(PermissionDeniedError):
            connect_service.setup_account(customer)

        assert not stripe_adapter.method_calls


@pytest.mark.django_db
class TestGetStatus:
    def test_without_account(self, connect_service, contractor, stripe_adapter):
        status = connect_service.get_status(contractor)

        assert status.has_connect_account is False
        assert status.status == ConnectAccountStatus.PENDING
        assert not stripe_adapter.retrieve_account.called

    def test_refreshes_from_stripe(self, connect_service, connect_account, stripe_adapter):
        """Should persist the mapped status on every query."""
        stripe_adapter.retrieve_account.return_value = ConnectAccountResult(
            id=connect_account.stripe_account_id,
            charges_enabled=True,
            payouts_enabled=True,
            details_submitted=True,
        )

        status = connect_service.get_status(connect_account.contractor)

        assert status.to_dict() == {
            "has_connect_account": True,
            "status": ConnectAccountStatus.ACTIVE,
            "account_id": connect_account.stripe_account_id,
            "charges_enabled": True,
            "payouts_enabled": True,
        }
        connect_account.refresh_from_db()
        assert connect_account.status == ConnectAccountStatus.ACTIVE
        assert connect_account.last_synced_at is not None


@pytest.mark.django_db
class TestDashboardLink:
    def test_returns_login_link(self, connect_service, connect_account):
        url = connect_service.get_dashboard_link(connect_account.contractor)

        assert url == "https://connect.stripe.com/express/acct_new_123/xyz"

    def test_requires_account(self, connect_service, contractor):
        with pytest.raises(PaymentNotFoundError) as exc_info:
            connect_service.get_dashboard_link(contractor)

        assert exc_info.value.error_code == "CONNECT_ACCOUNT_NOT_FOUND"


@pytest.mark.django_db
class TestSyncFromAccount:
    def test_applies_account_updated(self, connect_service, connect_account):
        result = connect_service.sync_from_account(
            {
                "id": connect_account.stripe_account_id,
                "charges_enabled": False,
                "payouts_enabled": False,
                "requirements": {"disabled_reason": "rejected.fraud"},
            }
        )

        assert result.success
        connect_account.refresh_from_db()
        assert connect_account.status == ConnectAccountStatus.REJECTED
        assert connect_account.disabled_reason == "rejected.fraud"

    def test_unknown_account_acknowledged(self, connect_service):
        result = connect_service.sync_from_account({"id": "acct_unknown"})

        assert result.success
        assert result.data is None
