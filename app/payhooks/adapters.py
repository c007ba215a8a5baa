"""
Stripe adapter for outbound payment objects.

Creates and updates Stripe objects with the attributes contributed by the
registered metadata providers. The caller's explicit params are deep
merged over the aggregated metadata, so the caller always wins on a
collision while provider keys it did not mention survive.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_MAX_RETRIES: Network retries performed by the SDK (default: 3)

Usage:
    from payhooks.adapters import StripeObjectAdapter

    result = StripeObjectAdapter.create(
        "customer",
        {"email": user.email},
        context={"user_id": user.id},
        idempotency_key=f"customer:{user.id}",
    )
    result.id  # "cus_xxx"
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import stripe
from django.conf import settings

from payhooks.exceptions import ProviderAPIError, UnsupportedObjectTypeError
from payhooks.metadata import collect_metadata, deep_merge

if TYPE_CHECKING:
    from collections.abc import Mapping

    from payhooks.registry import SubscriberRegistry


# =============================================================================
# Data Types
# =============================================================================


# Object types metadata providers can target, mapped to Stripe resources
STRIPE_RESOURCES: dict[str, str] = {
    "customer": "Customer",
    "subscription": "Subscription",
    "product": "Product",
    "price": "Price",
    "payment_intent": "PaymentIntent",
    "invoice": "Invoice",
}


@dataclass
class StripeObjectResult:
    """
    Result from a Stripe create/update call.

    Attributes:
        id: Stripe object ID (cus_xxx, sub_xxx, ...)
        object_type: Object type the call was made for
        attributes: Attributes sent to Stripe after merging
        raw: Full Stripe response dict (for debugging)
    """

    id: str
    object_type: str
    attributes: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Adapter
# =============================================================================


class StripeObjectAdapter:
    """
    Thin wrapper around the Stripe SDK for metadata-enriched writes.

    All methods are classmethods; the adapter holds no state of its own.
    """

    @staticmethod
    def _configure_stripe() -> None:
        """Configure the Stripe client with the API key and retry policy."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def resource_for(cls, object_type: str) -> Any:
        """
        Return the Stripe resource class for an object type.

        Raises:
            UnsupportedObjectTypeError: If the object type is not mapped
        """
        resource_name = STRIPE_RESOURCES.get(object_type)
        if resource_name is None:
            raise UnsupportedObjectTypeError(
                f"No Stripe resource for object type {object_type!r}",
                details={
                    "object_type": object_type,
                    "supported": sorted(STRIPE_RESOURCES),
                },
            )
        return getattr(stripe, resource_name)

    @classmethod
    def build_attributes(
        cls,
        object_type: str,
        params: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
        registry: SubscriberRegistry | None = None,
    ) -> dict[str, Any]:
        """
        Merge aggregated provider metadata with the caller's params.

        Args:
            object_type: Stripe object type
            params: Caller's explicit params (win on collisions)
            context: Values providers may read; defaults to ``params``
            registry: Defaults to the registry built at startup

        Returns:
            Attributes to send to Stripe
        """
        merged = collect_metadata(
            object_type,
            context if context is not None else params,
            registry=registry,
        )
        return deep_merge(merged.attributes, params)

    @classmethod
    def create(
        cls,
        object_type: str,
        params: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
        *,
        registry: SubscriberRegistry | None = None,
        idempotency_key: str | None = None,
    ) -> StripeObjectResult:
        """
        Create a Stripe object with merged metadata.

        Args:
            object_type: Stripe object type (e.g. 'customer')
            params: Caller's explicit create params
            context: Values providers may read; defaults to ``params``
            registry: Defaults to the registry built at startup
            idempotency_key: Stripe idempotency key for safe retries

        Returns:
            StripeObjectResult with the created object's ID

        Raises:
            UnsupportedObjectTypeError: Unknown object type
            ProviderAPIError: Stripe rejected or failed the call
        """
        resource = cls.resource_for(object_type)
        attributes = cls.build_attributes(object_type, params, context, registry)

        request_options: dict[str, Any] = {}
        if idempotency_key:
            request_options["idempotency_key"] = idempotency_key

        return cls._call(
            "create",
            object_type,
            attributes,
            lambda: resource.create(**attributes, **request_options),
            log_context={"idempotency_key": idempotency_key},
        )

    @classmethod
    def update(
        cls,
        object_type: str,
        object_id: str,
        params: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
        *,
        registry: SubscriberRegistry | None = None,
        idempotency_key: str | None = None,
    ) -> StripeObjectResult:
        """
        Update a Stripe object with merged metadata.

        Args:
            object_type: Stripe object type (e.g. 'subscription')
            object_id: Stripe object ID to modify
            params: Caller's explicit update params
            context: Values providers may read; defaults to ``params``
            registry: Defaults to the registry built at startup
            idempotency_key: Stripe idempotency key for safe retries

        Returns:
            StripeObjectResult for the updated object

        Raises:
            UnsupportedObjectTypeError: Unknown object type
            ProviderAPIError: Stripe rejected or failed the call
        """
        resource = cls.resource_for(object_type)
        attributes = cls.build_attributes(object_type, params, context, registry)

        request_options: dict[str, Any] = {}
        if idempotency_key:
            request_options["idempotency_key"] = idempotency_key

        return cls._call(
            "update",
            object_type,
            attributes,
            lambda: resource.modify(object_id, **attributes, **request_options),
            log_context={"object_id": object_id, "idempotency_key": idempotency_key},
        )

    @classmethod
    def _call(
        cls,
        operation: str,
        object_type: str,
        attributes: dict[str, Any],
        request,
        log_context: dict[str, Any],
    ) -> StripeObjectResult:
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": operation,
            "object_type": object_type,
            **log_context,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            obj = request()
        except stripe.StripeError as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Stripe {operation} failed for {object_type}",
                extra={
                    **log_context,
                    "duration_ms": duration_ms,
                    "stripe_code": getattr(e, "code", None),
                },
                exc_info=True,
            )
            raise ProviderAPIError(
                f"Stripe {object_type} {operation} failed",
                details={
                    "service": "stripe",
                    "object_type": object_type,
                    "stripe_code": getattr(e, "code", None),
                    "original_error": str(e),
                },
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "object_id": obj.id, "duration_ms": duration_ms},
        )

        return StripeObjectResult(
            id=obj.id,
            object_type=object_type,
            attributes=attributes,
            raw=obj.to_dict(),
        )
