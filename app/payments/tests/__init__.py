"""
Tests for payments app.

This package contains test modules for:
- test_amounts.py / test_state_transitions.py: Split, fee and transition tables
- test_models.py: JobPayment, WebhookEvent and ConnectAccount model tests
- test_orchestrator.py: Staged payments, confirmations and refunds
- test_connect_service.py / test_history.py: Connect and history services
- test_views.py: API endpoint tests
- test_tasks.py: Celery task tests

Usage:
    pytest payments/tests/
    pytest payments/tests/test_orchestrator.py
"""
