"""
Payhooks app configuration.

On startup the app builds the process-wide SubscriberRegistry from the
WEBHOOK_EVENT_HANDLERS and METADATA_PROVIDERS settings and freezes it.
A bad dotted path, an invalid pattern or a duplicate registration fails
startup instead of the first webhook.

Settings format:
    WEBHOOK_EVENT_HANDLERS = [
        ("invoice.*", "billing.handlers.InvoiceHandler"),
        ("*", "payhooks.contrib.EventAuditLogger"),
    ]
    METADATA_PROVIDERS = [
        ("customer", "accounts.metadata.customer_metadata"),
    ]

Classes are instantiated without arguments; functions and other objects
are registered as they are.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.apps import AppConfig, apps
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

if TYPE_CHECKING:
    from payhooks.registry import SubscriberRegistry


logger = logging.getLogger(__name__)


def _resolve(dotted_path: str, setting_name: str):
    try:
        target = import_string(dotted_path)
    except ImportError as e:
        raise ImproperlyConfigured(
            f"{setting_name}: cannot import {dotted_path!r}: {e}"
        ) from e
    return target() if isinstance(target, type) else target


def build_registry_from_settings() -> SubscriberRegistry:
    """
    Build and freeze a registry from the hub settings.

    Raises:
        ImproperlyConfigured: If a dotted path cannot be imported
        RegistryError: If a pattern is invalid or registered twice
    """
    from payhooks.registry import SubscriberRegistry

    registry = SubscriberRegistry()

    for pattern, dotted_path in getattr(settings, "WEBHOOK_EVENT_HANDLERS", []):
        registry.register_event_handler(
            pattern, _resolve(dotted_path, "WEBHOOK_EVENT_HANDLERS")
        )

    for object_type, dotted_path in getattr(settings, "METADATA_PROVIDERS", []):
        registry.register_metadata_provider(
            object_type, _resolve(dotted_path, "METADATA_PROVIDERS")
        )

    registry.freeze()
    return registry


class PayhooksConfig(AppConfig):
    """Configuration for the payhooks application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payhooks"
    verbose_name = "Payment Webhooks"

    registry: SubscriberRegistry | None = None

    def ready(self):
        self.registry = build_registry_from_settings()
        logger.info(
            "Webhook subscriber registry ready",
            extra={
                "handler_count": len(self.registry.subscriptions),
                "provider_count": len(self.registry.providers),
            },
        )


def get_registry() -> SubscriberRegistry:
    """Return the frozen registry built when the app started."""
    return apps.get_app_config("payhooks").registry
