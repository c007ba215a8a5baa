"""
Tests for registry wiring at startup.
"""

import pytest
from django.core.exceptions import ImproperlyConfigured

from payhooks.apps import build_registry_from_settings, get_registry
from payhooks.contrib import EventAuditLogger, StaticMetadataProvider
from payhooks.exceptions import DuplicateRegistrationError, InvalidPatternError


def record_event(event):
    """Module-level handler importable by dotted path."""
    return None


class TestBuildRegistryFromSettings:
    """Tests for building the registry from settings."""

    def test_startup_registry_is_frozen(self):
        """Should expose a frozen registry built from the default settings."""
        registry = get_registry()

        assert registry.is_frozen
        handlers = registry.lookup_event("invoice.paid")
        assert any(isinstance(s.handler, EventAuditLogger) for s in handlers)
        providers = registry.lookup_metadata("customer")
        assert any(isinstance(r.provider, StaticMetadataProvider) for r in providers)

    def test_classes_instantiated_and_functions_registered(self, settings):
        """Should instantiate classes and register functions as they are."""
        settings.WEBHOOK_EVENT_HANDLERS = [
            ("*", "payhooks.contrib.EventAuditLogger"),
            ("invoice.*", "payhooks.tests.test_apps.record_event"),
        ]
        settings.METADATA_PROVIDERS = []

        registry = build_registry_from_settings()

        subscriptions = registry.lookup_event("invoice.paid")
        assert [s.name for s in subscriptions] == [
            "audit_logger",
            "payhooks.tests.test_apps.record_event",
        ]
        assert registry.is_frozen

    def test_bad_dotted_path_fails_startup(self, settings):
        """Should raise ImproperlyConfigured for unimportable paths."""
        settings.WEBHOOK_EVENT_HANDLERS = [("*", "payhooks.contrib.DoesNotExist")]

        with pytest.raises(ImproperlyConfigured):
            build_registry_from_settings()

    def test_invalid_pattern_fails_startup(self, settings):
        """Should surface pattern errors at startup."""
        settings.WEBHOOK_EVENT_HANDLERS = [("*.paid", "payhooks.contrib.EventAuditLogger")]

        with pytest.raises(InvalidPatternError):
            build_registry_from_settings()

    def test_duplicate_fails_startup(self, settings):
        """Should surface duplicate registrations at startup."""
        settings.WEBHOOK_EVENT_HANDLERS = [
            ("*", "payhooks.contrib.EventAuditLogger"),
            ("*", "payhooks.contrib.EventAuditLogger"),
        ]

        with pytest.raises(DuplicateRegistrationError):
            build_registry_from_settings()
