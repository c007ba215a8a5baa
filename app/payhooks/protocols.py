"""
Protocol definitions for hub extension points.

Subscribers don't need to inherit from anything: any object with the right
method satisfies the protocol (duck typing). Plain functions are accepted
too and wrapped by the registry.

Available Protocols:
    EventHandler: Receives verified events
    MetadataProvider: Contributes attributes to outbound payment objects

Usage:
    from payhooks.protocols import EventHandler

    class InvoicePaidHandler:
        def handle(self, event):
            mark_invoice_paid(event.data_object["id"])

    handler: EventHandler = InvoicePaidHandler()

Note:
    @runtime_checkable allows isinstance() checks, which the registry uses
    to tell handler objects from plain callables.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from core.services import ServiceResult
    from payhooks.types import Event


@runtime_checkable
class EventHandler(Protocol):
    """
    Protocol for webhook event subscribers.

    Example:
        class AuditHandler:
            def handle(self, event: Event) -> None:
                logger.info("Received %s", event.type)

    Handlers may return None, any value, or a ServiceResult. Raising or
    returning a failed ServiceResult marks the invocation as failed; the
    remaining handlers still run.
    """

    def handle(self, event: Event) -> ServiceResult | Any:
        """
        Process one event.

        Args:
            event: The verified event
        """
        ...


@runtime_checkable
class MetadataProvider(Protocol):
    """
    Protocol for metadata providers.

    Example:
        class TenantProvider:
            def contribute(self, object_type, context):
                return {"metadata": {"tenant": context["tenant"]}}
    """

    def contribute(
        self, object_type: str, context: Mapping[str, Any]
    ) -> Mapping[str, Any]:
        """
        Return attributes for an outbound payment object.

        Args:
            object_type: Provider object type (e.g. 'customer')
            context: Caller-supplied context (read-only by convention)

        Returns:
            Mapping of attribute name to value; nested mappings are deep merged
        """
        ...
