"""
Subscriber registry for event handlers and metadata providers.

The registry is filled once at startup (see PayhooksConfig.ready) and then
frozen. After freezing, every lookup reads immutable tuples, so one
registry is shared by all concurrent requests without locking.

Pattern syntax for event handlers:
    "invoice.payment_succeeded"  exact event type
    "invoice.*"                  any type starting with "invoice."
    "*"                          every event

Metadata providers are registered for one object type or for "*".

Usage:
    from payhooks.registry import SubscriberRegistry

    registry = SubscriberRegistry()
    registry.register_event_handler("invoice.*", InvoiceHandler())
    registry.register_metadata_provider("customer", TenantProvider())
    registry.freeze()

    for subscription in registry.lookup_event("invoice.paid"):
        subscription.handler.handle(event)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from payhooks.exceptions import (
    DuplicateRegistrationError,
    InvalidPatternError,
    RegistryFrozenError,
)
from payhooks.protocols import EventHandler, MetadataProvider
from payhooks.types import ProviderRegistration, Subscription

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any


logger = logging.getLogger(__name__)


# =============================================================================
# Callable Adapters
# =============================================================================


class CallableHandler:
    """Adapts a plain ``fn(event)`` callable to the EventHandler protocol."""

    def __init__(self, func: Callable[..., Any]):
        self.func = func

    def handle(self, event):
        return self.func(event)

    def __repr__(self) -> str:
        return f"CallableHandler({handler_name(self.func)})"


class CallableProvider:
    """Adapts a plain ``fn(object_type, context)`` callable to MetadataProvider."""

    def __init__(self, func: Callable[..., Any]):
        self.func = func

    def contribute(self, object_type, context):
        return self.func(object_type, context)

    def __repr__(self) -> str:
        return f"CallableProvider({handler_name(self.func)})"


def handler_name(obj: Any) -> str:
    """
    Derive the registration name of a handler or provider.

    An explicit ``name`` attribute wins; functions use their dotted
    qualified name; instances use their class's dotted qualified name.
    """
    explicit = getattr(obj, "name", None)
    if isinstance(explicit, str) and explicit:
        return explicit
    target = obj if hasattr(obj, "__qualname__") else type(obj)
    return f"{target.__module__}.{target.__qualname__}"


# =============================================================================
# Pattern Validation
# =============================================================================


def validate_event_pattern(pattern: str) -> str:
    """
    Check an event type pattern and return it unchanged.

    Raises:
        InvalidPatternError: Empty pattern, or "*" used anywhere other than
            as the whole pattern or a trailing ".*"
    """
    if not isinstance(pattern, str) or not pattern.strip():
        raise InvalidPatternError(
            "Event pattern must be a non-empty string",
            details={"pattern": pattern},
        )
    if pattern == "*":
        return pattern

    prefix = pattern[:-2] if pattern.endswith(".*") else pattern
    if not prefix or "*" in prefix or prefix != prefix.strip():
        raise InvalidPatternError(
            f"Invalid event pattern: {pattern!r}",
            details={"pattern": pattern},
        )
    return pattern


def validate_object_type(object_type: str) -> str:
    """Check a metadata object type ("*" or a name without wildcards)."""
    if not isinstance(object_type, str) or not object_type.strip():
        raise InvalidPatternError(
            "Object type must be a non-empty string",
            details={"object_type": object_type},
        )
    if object_type != "*" and "*" in object_type:
        raise InvalidPatternError(
            f"Invalid object type: {object_type!r}",
            details={"object_type": object_type},
        )
    return object_type


# =============================================================================
# Registry
# =============================================================================


class SubscriberRegistry:
    """
    Holds event subscriptions and metadata provider registrations.

    Registration order is preserved and defines both dispatch order and
    metadata merge order. The same pattern may carry several handlers as
    long as their names differ.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] | tuple[Subscription, ...] = []
        self._providers: (
            list[ProviderRegistration] | tuple[ProviderRegistration, ...]
        ) = []
        self._frozen = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_event_handler(
        self,
        pattern: str,
        handler: Any,
        *,
        name: str | None = None,
        replace: bool = False,
    ) -> Subscription:
        """
        Subscribe a handler to an event type pattern.

        Args:
            pattern: Exact type, "prefix.*" or "*"
            handler: Object with ``handle(event)`` or a plain callable
            name: Registration name (derived from the handler when omitted)
            replace: Swap an existing registration with the same pattern
                and name in place instead of raising

        Returns:
            The stored Subscription

        Raises:
            InvalidPatternError: If the pattern is malformed
            DuplicateRegistrationError: If pattern and name are taken
            RegistryFrozenError: If the registry is frozen
        """
        validate_event_pattern(pattern)
        name = name or handler_name(handler)

        if not isinstance(handler, EventHandler):
            if not callable(handler):
                raise TypeError(
                    f"Handler {name!r} must define handle(event) or be callable"
                )
            handler = CallableHandler(handler)

        subscription = Subscription(pattern=pattern, handler=handler, name=name)

        with self._lock:
            self._check_not_frozen()
            self._subscriptions = self._store(
                self._subscriptions,
                subscription,
                key=lambda s: (s.pattern, s.name),
                replace=replace,
            )

        logger.debug(
            f"Registered event handler {name} for {pattern}",
            extra={"pattern": pattern, "handler": name},
        )
        return subscription

    def register_metadata_provider(
        self,
        object_type: str,
        provider: Any,
        *,
        name: str | None = None,
        replace: bool = False,
    ) -> ProviderRegistration:
        """
        Register a metadata provider for an object type.

        Args:
            object_type: Provider object type (e.g. 'customer') or "*"
            provider: Object with ``contribute(object_type, context)`` or a
                callable with that signature
            name: Registration name (derived from the provider when omitted)
            replace: Swap an existing registration in place instead of raising

        Returns:
            The stored ProviderRegistration

        Raises:
            InvalidPatternError: If the object type is malformed
            DuplicateRegistrationError: If object type and name are taken
            RegistryFrozenError: If the registry is frozen
        """
        validate_object_type(object_type)
        name = name or handler_name(provider)

        if not isinstance(provider, MetadataProvider):
            if not callable(provider):
                raise TypeError(
                    f"Provider {name!r} must define contribute() or be callable"
                )
            provider = CallableProvider(provider)

        registration = ProviderRegistration(
            object_type=object_type, provider=provider, name=name
        )

        with self._lock:
            self._check_not_frozen()
            self._providers = self._store(
                self._providers,
                registration,
                key=lambda r: (r.object_type, r.name),
                replace=replace,
            )

        logger.debug(
            f"Registered metadata provider {name} for {object_type}",
            extra={"object_type": object_type, "provider": name},
        )
        return registration

    def _store(self, entries, entry, *, key, replace):
        entries = list(entries)
        for index, existing in enumerate(entries):
            if key(existing) == key(entry):
                if not replace:
                    scope, entry_name = key(entry)
                    raise DuplicateRegistrationError(
                        f"{entry_name} is already registered for {scope}",
                        details={"pattern": scope, "name": entry_name},
                    )
                entries[index] = entry
                return entries
        entries.append(entry)
        return entries

    def _check_not_frozen(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Registry is frozen; register at startup")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def freeze(self) -> None:
        """Make the registry read-only. Idempotent."""
        with self._lock:
            self._subscriptions = tuple(self._subscriptions)
            self._providers = tuple(self._providers)
            self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def lookup_event(self, event_type: str) -> tuple[Subscription, ...]:
        """Return subscriptions matching ``event_type`` in registration order."""
        return tuple(s for s in self._subscriptions if s.matches(event_type))

    def lookup_metadata(self, object_type: str) -> tuple[ProviderRegistration, ...]:
        """Return providers for ``object_type`` and "*" in registration order."""
        return tuple(r for r in self._providers if r.applies_to(object_type))

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return tuple(self._subscriptions)

    @property
    def providers(self) -> tuple[ProviderRegistration, ...]:
        return tuple(self._providers)

    def __repr__(self) -> str:
        return (
            f"SubscriberRegistry(handlers={len(self._subscriptions)}, "
            f"providers={len(self._providers)}, frozen={self._frozen})"
        )
