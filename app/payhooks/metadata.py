"""
Metadata aggregation for outbound payment objects.

Before a payment object (customer, subscription, price, ...) is created or
updated at the provider, every metadata provider registered for that
object type, and for "*", is asked for attributes. Their outputs are
merged into one mapping:

    - providers run in registration order; later ones win on collisions
    - nested mappings are merged key by key (siblings coexist)
    - a mapping meeting a scalar is a plain collision: last write wins
    - keys keep the order in which they were first seen

A provider that raises or returns something other than a mapping is
skipped and recorded in ``MergedMetadata.errors``; the others still count.

Usage:
    from payhooks.metadata import collect_metadata

    merged = collect_metadata("customer", {"user_id": 42})
    stripe.Customer.create(email=email, **merged.attributes)
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from payhooks.exceptions import ProviderFailedError
from payhooks.types import MergedMetadata, MetadataContribution

if TYPE_CHECKING:
    from typing import Any

    from payhooks.registry import SubscriberRegistry


logger = logging.getLogger(__name__)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Merge ``override`` into a copy of ``base``.

    Nested mappings present on both sides are merged recursively; any
    other collision takes the value from ``override``. Neither input is
    modified.

    Example:
        deep_merge({"metadata": {"a": 1}}, {"metadata": {"b": 2}})
        # {"metadata": {"a": 1, "b": 2}}
    """
    merged = {key: copy.deepcopy(value) for key, value in base.items()}
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = _plain_copy(value)
    return merged


def _plain_copy(value: Any) -> Any:
    # Mappings become plain dicts so results are JSON and SDK friendly
    if isinstance(value, Mapping):
        return {key: _plain_copy(item) for key, item in value.items()}
    return copy.deepcopy(value)


class MetadataAggregator:
    """Merges the contributions of all providers for an object type."""

    def aggregate(
        self,
        object_type: str,
        base_context: Mapping[str, Any],
        registry: SubscriberRegistry,
    ) -> MergedMetadata:
        """
        Ask every applicable provider for attributes and merge them.

        Args:
            object_type: Provider object type (e.g. 'customer')
            base_context: Caller-supplied values providers may read
            registry: Registry to look providers up in

        Returns:
            MergedMetadata; never raises because of a provider
        """
        result = MergedMetadata(object_type=object_type)

        for registration in registry.lookup_metadata(object_type):
            try:
                output = registration.provider.contribute(object_type, base_context)
            except Exception as e:
                self._skip(
                    result,
                    registration.name,
                    f"{type(e).__name__}: {e}",
                    exc_info=True,
                )
                continue

            if not isinstance(output, Mapping):
                self._skip(
                    result,
                    registration.name,
                    f"Provider returned {type(output).__name__}, expected a mapping",
                )
                continue

            output = _plain_copy(output)
            result.attributes = deep_merge(result.attributes, output)
            result.contributions.extend(
                MetadataContribution(
                    object_type=object_type,
                    key=key,
                    value=value,
                    provider=registration.name,
                )
                for key, value in output.items()
            )

        return result

    def _skip(
        self,
        result: MergedMetadata,
        provider_name: str,
        reason: str,
        exc_info: bool = False,
    ) -> None:
        error = ProviderFailedError(
            reason,
            details={"provider": provider_name, "object_type": result.object_type},
        )
        result.errors.append(error)
        logger.warning(
            f"Metadata provider {provider_name} skipped: {reason}",
            extra={
                "provider": provider_name,
                "object_type": result.object_type,
            },
            exc_info=exc_info,
        )


def collect_metadata(
    object_type: str,
    context: Mapping[str, Any] | None = None,
    registry: SubscriberRegistry | None = None,
) -> MergedMetadata:
    """
    Aggregate metadata for an outbound object.

    Args:
        object_type: Provider object type (e.g. 'customer')
        context: Values providers may read (user id, plan, ...)
        registry: Defaults to the registry built at startup

    Returns:
        MergedMetadata with the merged attributes
    """
    if registry is None:
        from payhooks.apps import get_registry

        registry = get_registry()
    return MetadataAggregator().aggregate(object_type, context or {}, registry)
