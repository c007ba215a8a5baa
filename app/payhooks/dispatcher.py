"""
Event dispatch to registered subscribers.

Matched handlers run one after another in registration order. Each
invocation is isolated: each handler receives its own copy of the event
payload, and a handler that raises, returns a failed ServiceResult, or
overruns its time budget is recorded in the DispatchReport while the next
handler still runs. ``dispatch()`` itself
never raises because of a handler.

Timeouts:
    Each handler runs on its own worker thread and the dispatcher waits at
    most ``timeout_seconds`` for it. Python threads cannot be killed, so a
    handler that overruns is abandoned: it keeps running in the background
    while dispatch moves on. With a timeout of None (or 0) handlers run
    inline on the calling thread.

There are no retries here. The provider re-delivers when we answer with an
error, and the deduplicator decides whether that delivery is processed.

Usage:
    from payhooks.dispatcher import EventDispatcher

    dispatcher = EventDispatcher(timeout_seconds=10)
    report = dispatcher.dispatch(event, registry)
    if not report.succeeded:
        logger.warning(f"{report.failed_count} handlers failed")
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TYPE_CHECKING

from django.db import connections

from core.services import ServiceResult
from payhooks.exceptions import (
    DispatchHandlerError,
    HandlerFailedError,
    HandlerTimeoutError,
)
from payhooks.types import DispatchReport, HandlerOutcome, OutcomeStatus

if TYPE_CHECKING:
    from typing import Any

    from payhooks.registry import SubscriberRegistry
    from payhooks.types import Event, Subscription


logger = logging.getLogger(__name__)

DEFAULT_HANDLER_TIMEOUT_SECONDS = 10.0


def _run_in_worker(subscription: Subscription, event: Event) -> Any:
    try:
        return subscription.handler.handle(event)
    finally:
        # Connections are per thread; don't leak one per worker
        connections.close_all()


class EventDispatcher:
    """
    Fans a verified event out to every matching subscription.

    Args:
        timeout_seconds: Per-handler time budget; None or 0 runs handlers
            inline without a timeout
    """

    def __init__(self, timeout_seconds: float | None = DEFAULT_HANDLER_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds or None

    def dispatch(self, event: Event, registry: SubscriberRegistry) -> DispatchReport:
        """
        Invoke every handler subscribed to ``event.type``.

        Args:
            event: The verified event
            registry: Registry to look subscriptions up in

        Returns:
            DispatchReport with one outcome per matched handler, in order
        """
        subscriptions = registry.lookup_event(event.type)
        report = DispatchReport(
            event_id=event.id,
            event_type=event.type,
            matched_count=len(subscriptions),
        )

        if not subscriptions:
            logger.info(
                f"No handlers subscribed to {event.type}",
                extra={"event_id": event.id, "event_type": event.type},
            )
            return report

        for subscription in subscriptions:
            report.per_handler.append(self._invoke(subscription, event))

        log = logger.info if report.succeeded else logger.warning
        log(
            f"Dispatched {event.type} to {report.matched_count} handlers, "
            f"{report.failed_count} failed",
            extra={
                "event_id": event.id,
                "event_type": event.type,
                "matched_count": report.matched_count,
                "failed_count": report.failed_count,
            },
        )
        return report

    def _invoke(self, subscription: Subscription, event: Event) -> HandlerOutcome:
        started = time.monotonic()
        try:
            # Each handler gets its own payload so mutations stay local
            result = self._call(subscription, event.isolated_copy())
            if isinstance(result, ServiceResult) and not result.success:
                raise HandlerFailedError(
                    result.error or "Handler returned a failed result",
                    error_code=result.error_code,
                    details={"handler": subscription.name},
                )
        except DispatchHandlerError as e:
            return self._failed(subscription, event, e, started)
        except Exception as e:
            error = HandlerFailedError(
                f"{type(e).__name__}: {e}",
                details={"handler": subscription.name},
            )
            return self._failed(subscription, event, error, started, exc_info=True)

        duration_ms = _elapsed_ms(started)
        logger.debug(
            f"Handler {subscription.name} completed",
            extra={
                "event_id": event.id,
                "handler": subscription.name,
                "duration_ms": duration_ms,
            },
        )
        return HandlerOutcome(
            handler_name=subscription.name,
            status=OutcomeStatus.OK,
            duration_ms=duration_ms,
        )

    def _call(self, subscription: Subscription, event: Event) -> Any:
        if self.timeout_seconds is None:
            return subscription.handler.handle(event)

        executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="payhooks-handler"
        )
        try:
            future = executor.submit(_run_in_worker, subscription, event)
            try:
                return future.result(timeout=self.timeout_seconds)
            except FutureTimeoutError:
                raise HandlerTimeoutError(
                    f"Handler exceeded {self.timeout_seconds}s timeout",
                    details={
                        "handler": subscription.name,
                        "timeout_seconds": self.timeout_seconds,
                    },
                ) from None
        finally:
            # Never wait on an abandoned worker
            executor.shutdown(wait=False)

    def _failed(
        self,
        subscription: Subscription,
        event: Event,
        error: DispatchHandlerError,
        started: float,
        exc_info: bool = False,
    ) -> HandlerOutcome:
        duration_ms = _elapsed_ms(started)
        status = (
            OutcomeStatus.TIMEOUT
            if isinstance(error, HandlerTimeoutError)
            else OutcomeStatus.FAILED
        )
        logger.warning(
            f"Handler {subscription.name} {status} for {event.type}: {error.message}",
            extra={
                "event_id": event.id,
                "event_type": event.type,
                "handler": subscription.name,
                "error_code": error.error_code,
                "duration_ms": duration_ms,
            },
            exc_info=exc_info,
        )
        return HandlerOutcome(
            handler_name=subscription.name,
            status=status,
            reason=error.message,
            error_code=error.error_code,
            duration_ms=duration_ms,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
