"""
Built-in subscribers shipped with the hub.

EventAuditLogger:
    Logs every event it receives. Registered for "*" by default so each
    accepted delivery leaves a trace in the application log.

StaticMetadataProvider:
    Contributes the STATIC_METADATA setting, e.g.
        STATIC_METADATA = {"*": {"metadata": {"source": "payhooks"}}}

ContextMetadataProvider:
    Copies selected context values into the ``metadata`` map of customer
    objects, e.g. the local user id so Stripe customers can be traced
    back to accounts.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings

from payhooks.metadata import deep_merge

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from payhooks.types import Event


logger = logging.getLogger(__name__)


class EventAuditLogger:
    """Logs type, id and object id of every event it handles."""

    name = "audit_logger"

    def handle(self, event: Event) -> None:
        logger.info(
            f"Webhook event {event.type} ({event.id})",
            extra={
                "event_id": event.id,
                "event_type": event.type,
                "object_id": event.data_object.get("id"),
                "livemode": event.payload.get("livemode"),
            },
        )


class StaticMetadataProvider:
    """
    Contributes fixed attributes from settings.

    Entries under "*" apply to every object type; entries under a specific
    type are merged over them.

    Args:
        static_metadata: Overrides the STATIC_METADATA setting
    """

    name = "static_metadata"

    def __init__(self, static_metadata: Mapping[str, Mapping[str, Any]] | None = None):
        self._static_metadata = static_metadata

    @property
    def static_metadata(self) -> Mapping[str, Mapping[str, Any]]:
        if self._static_metadata is not None:
            return self._static_metadata
        return getattr(settings, "STATIC_METADATA", {})

    def contribute(self, object_type: str, context: Mapping[str, Any]) -> dict[str, Any]:
        configured = self.static_metadata
        return deep_merge(configured.get("*", {}), configured.get(object_type, {}))


class ContextMetadataProvider:
    """
    Copies context values into the ``metadata`` map of an object.

    Stripe metadata values are strings, so copied values are stringified.
    Missing or None context keys are left out.

    Args:
        keys: Context keys to copy (defaults to CUSTOMER_CONTEXT_METADATA_KEYS)
    """

    name = "context_metadata"

    def __init__(self, keys: list[str] | None = None):
        self._keys = keys

    @property
    def keys(self) -> list[str]:
        if self._keys is not None:
            return self._keys
        return list(getattr(settings, "CUSTOMER_CONTEXT_METADATA_KEYS", []))

    def contribute(self, object_type: str, context: Mapping[str, Any]) -> dict[str, Any]:
        values = {
            key: str(context[key])
            for key in self.keys
            if context.get(key) is not None
        }
        if not values:
            return {}
        return {"metadata": values}
