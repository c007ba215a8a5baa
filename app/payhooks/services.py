"""
Webhook processing pipeline.

WebhookService ties the pieces together for one inbound request:

    raw body + signature header
        -> verify()                 (VerificationError -> HTTP 400)
        -> EventDeduplicator.claim  (duplicate -> stop; unavailable -> 503)
        -> EventDispatcher.dispatch (handler failures contained)
        -> record outcome on the dedup record

The view is a thin HTTP translation of this service, which keeps the
pipeline testable without requests.

Usage:
    from payhooks.services import WebhookService

    service = WebhookService.from_settings()
    result = service.process(request.body, request.headers["Stripe-Signature"])
    if result.is_duplicate:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from payhooks.conf import HubSettings
from payhooks.dedup import get_deduplicator
from payhooks.dispatcher import EventDispatcher
from payhooks.exceptions import DedupStoreUnavailableError
from payhooks.verification import verify

if TYPE_CHECKING:
    from collections.abc import Sequence

    from payhooks.dedup import EventDeduplicator
    from payhooks.registry import SubscriberRegistry
    from payhooks.types import DispatchReport, Event


logger = logging.getLogger(__name__)


STATUS_PROCESSED = "processed"
STATUS_DUPLICATE = "duplicate"


@dataclass(frozen=True)
class WebhookProcessingResult:
    """
    Outcome of processing one webhook request.

    Attributes:
        status: "processed" or "duplicate"
        event: The verified event
        report: Dispatch report (None for duplicates)
    """

    status: str
    event: Event
    report: DispatchReport | None = None

    @property
    def is_duplicate(self) -> bool:
        return self.status == STATUS_DUPLICATE


class WebhookService:
    """
    Verifies, deduplicates and dispatches inbound webhook requests.

    Args:
        secret: Signing secret or secrets
        tolerance_seconds: Signature replay window (None disables)
        deduplicator: Claims event ids
        dispatcher: Fans events out to handlers
        registry: Subscriptions to dispatch to
        dedup_unavailable_policy: "reject" re-raises store outages so the
            request fails and the provider retries; "process" dispatches
            without deduplication
    """

    def __init__(
        self,
        secret: str | Sequence[str],
        tolerance_seconds: int | None,
        deduplicator: EventDeduplicator,
        dispatcher: EventDispatcher,
        registry: SubscriberRegistry,
        dedup_unavailable_policy: str = "reject",
    ):
        self.secret = secret
        self.tolerance_seconds = tolerance_seconds
        self.deduplicator = deduplicator
        self.dispatcher = dispatcher
        self.registry = registry
        self.dedup_unavailable_policy = dedup_unavailable_policy

    @classmethod
    def from_settings(
        cls,
        registry: SubscriberRegistry | None = None,
        hub_settings: HubSettings | None = None,
    ) -> WebhookService:
        """
        Build the service from Django settings.

        Args:
            registry: Defaults to the registry built at startup
            hub_settings: Defaults to HubSettings.from_settings()
        """
        hub_settings = hub_settings or HubSettings.from_settings()
        if registry is None:
            from payhooks.apps import get_registry

            registry = get_registry()

        return cls(
            secret=hub_settings.webhook_secrets,
            tolerance_seconds=hub_settings.signature_tolerance_seconds,
            deduplicator=get_deduplicator(hub_settings),
            dispatcher=EventDispatcher(
                timeout_seconds=hub_settings.handler_timeout_seconds
            ),
            registry=registry,
            dedup_unavailable_policy=hub_settings.dedup_unavailable_policy,
        )

    def process(self, raw_body: bytes, signature_header: str) -> WebhookProcessingResult:
        """
        Run one request through the pipeline.

        Args:
            raw_body: Exact request body bytes
            signature_header: Value of the signature header

        Returns:
            WebhookProcessingResult

        Raises:
            VerificationError: Request is not authentic or not an event
            DedupStoreUnavailableError: Store is down and the policy is "reject"
        """
        event = verify(raw_body, signature_header, self.secret, self.tolerance_seconds)

        log_context = {"event_id": event.id, "event_type": event.type}
        logger.info(f"Received webhook: {event.type}", extra=log_context)

        deduplicated = True
        try:
            claimed = self.deduplicator.claim(
                event.id,
                event_type=event.type,
                payload=event.payload,
            )
        except DedupStoreUnavailableError as e:
            if self.dedup_unavailable_policy != "process":
                logger.warning(
                    "Dedup store unavailable, rejecting webhook",
                    extra={**log_context, "error": str(e)},
                )
                raise
            logger.warning(
                "Dedup store unavailable, dispatching without deduplication",
                extra={**log_context, "error": str(e)},
            )
            claimed = True
            deduplicated = False

        if not claimed:
            logger.info("Webhook already processed, skipping", extra=log_context)
            return WebhookProcessingResult(status=STATUS_DUPLICATE, event=event)

        report = self.dispatcher.dispatch(event, self.registry)

        if deduplicated:
            self.deduplicator.record_outcome(event.id, report)

        return WebhookProcessingResult(
            status=STATUS_PROCESSED,
            event=event,
            report=report,
        )
