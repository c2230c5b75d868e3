"""
Pytest configuration for the Django apps.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import django
import pytest


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    # Keep the cache in-process so tests never reach for Redis
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}
    }


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_serializers.py, test_amounts.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_permissions.py",
        "test_handlers.py",
        "test_processor.py",
        "test_orchestrator.py",
        "test_connect_service.py",
        "test_history.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_exceptions.py",
        "test_helpers.py",
        "test_adapters.py",
        "test_stripe_adapter.py",
        "test_amounts.py",
        "test_state_transitions.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def api_client():
    """Unauthenticated DRF test client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def mock_stripe_adapter():
    """
    Stand-in for StripeAdapter, injected through a service's constructor.

    Tests configure return values per call, e.g.:
        mock_stripe_adapter.create_payment_intent.return_value = ...
    """
    from unittest.mock import MagicMock

    return MagicMock(name="StripeAdapter")


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def customer(db):
    """Create a customer account."""
    from authentication.tests.factories import CustomerFactory

    return CustomerFactory()


@pytest.fixture
def contractor(db):
    """Create a contractor account."""
    from authentication.tests.factories import ContractorFactory

    return ContractorFactory()


@pytest.fixture
def platform_admin(db):
    """Create an admin account."""
    from authentication.tests.factories import AdminFactory

    return AdminFactory()


def _client_for(user):
    from rest_framework.test import APIClient

    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def customer_client(customer):
    return _client_for(customer)


@pytest.fixture
def contractor_client(contractor):
    return _client_for(contractor)


@pytest.fixture
def platform_admin_client(platform_admin):
    return _client_for(platform_admin)
