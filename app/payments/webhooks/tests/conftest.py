"""
Pytest fixtures for webhook tests.

Provides a patched signature check so views can be driven with plain JSON
bodies.
"""

from unittest.mock import patch

import pytest

from payments.webhooks.tests.payloads import make_event


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def verify_signature():
    """
    Patch signature verification; tests set its return_value to the event.

    Set side_effect to simulate a bad signature.
    """
    with patch(
        "payments.webhooks.views.StripeAdapter.verify_webhook_signature"
    ) as mock_verify:
        yield mock_verify
