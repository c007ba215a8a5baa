"""
Data types for the webhook hub.

This module defines dataclasses passed between the verifier, deduplicator,
dispatcher and metadata aggregator.

Types:
    Event: A verified provider event
    Subscription: A handler registered for an event type pattern
    MetadataContribution: One attribute contributed by a metadata provider
    MergedMetadata: The merged provider output for one object type
    ProviderRegistration: A metadata provider registered for an object type
    OutcomeStatus: Result of a single handler invocation
    HandlerOutcome: Per-handler entry of a dispatch report
    DispatchReport: What happened when an event was dispatched

Usage:
    from payhooks.types import Event

    event = verify(body, header, secret)
    invoice = event.data_object
    print(event.type, invoice.get("id"))
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.db import models

if TYPE_CHECKING:
    from payhooks.exceptions import ProviderFailedError


@dataclass(frozen=True)
class Event:
    """
    A provider event that passed signature verification.

    Attributes:
        id: Provider event id (evt_xxx), the deduplication key
        type: Dotted event type (e.g. 'invoice.payment_succeeded')
        payload: Full parsed JSON body
        received_at: When the hub accepted the request
        signed_at: Timestamp from the signature header
    """

    id: str
    type: str
    payload: dict[str, Any]
    received_at: datetime
    signed_at: datetime | None = None

    @property
    def data(self) -> dict[str, Any]:
        """The ``data`` envelope of the payload (empty dict when absent)."""
        data = self.payload.get("data")
        return data if isinstance(data, dict) else {}

    @property
    def data_object(self) -> dict[str, Any]:
        """The provider object the event is about (``data.object``)."""
        obj = self.data.get("object")
        return obj if isinstance(obj, dict) else {}

    def isolated_copy(self) -> Event:
        """Return an equal Event whose payload shares no objects with this one."""
        return replace(self, payload=copy.deepcopy(self.payload))


@dataclass(frozen=True)
class Subscription:
    """
    A handler registered for an event type pattern.

    Attributes:
        pattern: Exact type, "prefix.*" or "*"
        handler: Object exposing ``handle(event)``
        name: Handler name used in reports and duplicate detection
    """

    pattern: str
    handler: Any
    name: str

    def matches(self, event_type: str) -> bool:
        """Return True if this subscription applies to ``event_type``."""
        return pattern_matches(self.pattern, event_type)


def pattern_matches(pattern: str, event_type: str) -> bool:
    """
    Match an event type against a subscription pattern.

    "*" matches everything, "invoice.*" matches any type starting with
    "invoice." (at any depth) and anything else is an exact match.
    """
    if pattern == "*":
        return True
    if pattern.endswith(".*"):
        return event_type.startswith(pattern[:-1])
    return pattern == event_type


@dataclass(frozen=True)
class MetadataContribution:
    """
    One top-level attribute contributed by a metadata provider.

    Attributes:
        object_type: Object type the attribute was requested for
        key: Attribute name
        value: Attribute value as returned by the provider
        provider: Name of the contributing provider
    """

    object_type: str
    key: str
    value: Any
    provider: str


@dataclass
class MergedMetadata:
    """
    Result of aggregating every provider for an object type.

    Attributes:
        object_type: Object type the metadata was built for
        attributes: Merged attributes, keys in first-seen order
        contributions: Contributions folded in, in merge order
        errors: Providers that failed and were skipped
    """

    object_type: str
    attributes: dict[str, Any] = field(default_factory=dict)
    contributions: list[MetadataContribution] = field(default_factory=list)
    errors: list[ProviderFailedError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """True if at least one provider was skipped."""
        return bool(self.errors)


class OutcomeStatus(models.TextChoices):
    """Result of invoking one handler for one event."""

    OK = "ok", "OK"
    FAILED = "failed", "Failed"
    TIMEOUT = "timeout", "Timed out"


@dataclass(frozen=True)
class HandlerOutcome:
    """
    Outcome of a single handler invocation.

    Attributes:
        handler_name: Registered handler name
        status: ok, failed or timeout
        reason: Error message for failed/timeout outcomes
        error_code: Machine-readable code for failed/timeout outcomes
        duration_ms: Wall-clock time spent waiting on the handler
    """

    handler_name: str
    status: OutcomeStatus
    reason: str | None = None
    error_code: str | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "handler": self.handler_name,
            "status": str(self.status),
            "reason": self.reason,
            "error_code": self.error_code,
            "duration_ms": self.duration_ms,
        }


@dataclass
class DispatchReport:
    """
    Summary of dispatching one event.

    Attributes:
        event_id: Dispatched event id
        event_type: Dispatched event type
        matched_count: Number of subscriptions that matched
        per_handler: Outcomes in invocation order
    """

    event_id: str
    event_type: str
    matched_count: int = 0
    per_handler: list[HandlerOutcome] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        """Number of handlers that failed or timed out."""
        return sum(1 for outcome in self.per_handler if not outcome.ok)

    @property
    def succeeded(self) -> bool:
        """True if every matched handler completed successfully."""
        return self.failed_count == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "matched_count": self.matched_count,
            "failed_count": self.failed_count,
            "handlers": [outcome.to_dict() for outcome in self.per_handler],
        }


@dataclass(frozen=True)
class ProviderRegistration:
    """
    A metadata provider registered for an object type.

    Attributes:
        object_type: Object type, or "*" for every type
        provider: Object exposing ``contribute(object_type, context)``
        name: Provider name used in contributions, errors and duplicate detection
    """

    object_type: str
    provider: Any
    name: str

    def applies_to(self, object_type: str) -> bool:
        """Return True if this provider contributes to ``object_type``."""
        return self.object_type == "*" or self.object_type == object_type
