"""
Pytest fixtures for webhook hub tests.

Provides isolated registries so tests never depend on the registry built
at startup, plus hub settings pointing at the test signing secret.
"""

import pytest

from payhooks.registry import SubscriberRegistry
from payhooks.tests.helpers import TEST_SECRET, make_event


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def registry():
    """Empty, unfrozen registry."""
    return SubscriberRegistry()


@pytest.fixture
def event():
    """A verified invoice.payment_succeeded event."""
    return make_event()


@pytest.fixture
def webhook_settings(settings):
    """Hub settings pointing at the test secret with a fast handler timeout."""
    settings.STRIPE_WEBHOOK_SECRET = [TEST_SECRET]
    settings.WEBHOOK_DEDUP_BACKEND = "database"
    settings.WEBHOOK_DEDUP_UNAVAILABLE_POLICY = "reject"
    settings.WEBHOOK_DUPLICATE_STATUS = 200
    settings.WEBHOOK_HANDLER_TIMEOUT_MS = 2000
    return settings
