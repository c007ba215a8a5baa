"""
Event deduplication.

Providers deliver events at least once and retry on any non-2xx answer,
so the same event id can arrive many times, sometimes concurrently. The
deduplicator claims each event id exactly once within the retention
window; only the claimer dispatches.

Check-and-insert is delegated to the store's own atomic primitive:

    DatabaseDedupStore: INSERT into WebhookEvent guarded by the unique
        event_id constraint (IntegrityError means someone else claimed it)
    CacheDedupStore: cache.add(), which is SET NX under django-redis

A store that cannot be reached raises DedupStoreUnavailableError. The
event is never treated as new in that case.

Usage:
    from payhooks.dedup import get_deduplicator

    deduplicator = get_deduplicator()
    if deduplicator.claim(event.id, event_type=event.type, payload=event.payload):
        report = dispatcher.dispatch(event, registry)
        deduplicator.record_outcome(event.id, report)
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from datetime import timedelta
from typing import TYPE_CHECKING

from django.core.cache import cache as default_cache
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
from django_redis.exceptions import ConnectionInterrupted
from redis.exceptions import RedisError

from payhooks.conf import HubSettings
from payhooks.exceptions import DedupStoreUnavailableError
from payhooks.models import WebhookEvent, WebhookEventStatus

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from payhooks.types import DispatchReport


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_RETENTION = timedelta(days=14)
DEFAULT_SWEEP_INTERVAL = timedelta(hours=1)

CACHE_KEY_PREFIX = "payhooks:webhook-event:"

# Errors the cache layer raises when Redis is unreachable
CACHE_UNAVAILABLE_ERRORS = (RedisError, ConnectionInterrupted, OSError)


# =============================================================================
# Stores
# =============================================================================


class DatabaseDedupStore:
    """
    Dedup store backed by the WebhookEvent table.

    The unique constraint on ``event_id`` makes concurrent claims of the
    same id race safely: exactly one INSERT succeeds.
    """

    def claim(
        self,
        event_id: str,
        *,
        event_type: str = "",
        payload: dict[str, Any] | None = None,
        retention: timedelta = DEFAULT_RETENTION,
    ) -> bool:
        """Insert the dedup record; False if it already exists."""
        try:
            with transaction.atomic():
                WebhookEvent.objects.create(
                    event_id=event_id,
                    event_type=event_type,
                    payload=payload or {},
                    status=WebhookEventStatus.CLAIMED,
                )
        except IntegrityError:
            return False
        except DatabaseError as e:
            raise DedupStoreUnavailableError(
                "Dedup database unavailable",
                details={"event_id": event_id, "original_error": str(e)},
            ) from e
        return True

    def purge(self, cutoff: datetime) -> int:
        """Delete records claimed before ``cutoff``."""
        try:
            deleted_count, _ = WebhookEvent.objects.filter(
                created_at__lt=cutoff,
            ).delete()
        except DatabaseError as e:
            raise DedupStoreUnavailableError(
                "Dedup database unavailable",
                details={"original_error": str(e)},
            ) from e
        return deleted_count

    def record_outcome(self, event_id: str, report: DispatchReport) -> None:
        """Store dispatch counts and status on the dedup record."""
        failures = [
            f"{outcome.handler_name}: {outcome.status} ({outcome.reason})"
            for outcome in report.per_handler
            if not outcome.ok
        ]
        try:
            WebhookEvent.objects.filter(event_id=event_id).update(
                status=(
                    WebhookEventStatus.PROCESSED
                    if report.succeeded
                    else WebhookEventStatus.FAILED
                ),
                processed_at=timezone.now(),
                matched_count=report.matched_count,
                failed_count=report.failed_count,
                error_message="\n".join(failures) or None,
                updated_at=timezone.now(),
            )
        except DatabaseError as e:
            raise DedupStoreUnavailableError(
                "Dedup database unavailable",
                details={"event_id": event_id, "original_error": str(e)},
            ) from e


class CacheDedupStore:
    """
    Dedup store backed by the Django cache (Redis in deployment).

    Records expire on their own through the cache TTL, so ``purge`` has
    nothing to do. Dispatch outcomes are not kept.
    """

    def __init__(self, cache=None, key_prefix: str = CACHE_KEY_PREFIX):
        self.cache = cache if cache is not None else default_cache
        self.key_prefix = key_prefix

    def _key(self, event_id: str) -> str:
        return f"{self.key_prefix}{event_id}"

    def claim(
        self,
        event_id: str,
        *,
        event_type: str = "",
        payload: dict[str, Any] | None = None,
        retention: timedelta = DEFAULT_RETENTION,
    ) -> bool:
        """SET NX the event id with a TTL of the retention window."""
        try:
            return bool(
                self.cache.add(
                    self._key(event_id),
                    timezone.now().isoformat(),
                    timeout=int(retention.total_seconds()),
                )
            )
        except CACHE_UNAVAILABLE_ERRORS as e:
            raise DedupStoreUnavailableError(
                "Dedup cache unavailable",
                details={"event_id": event_id, "original_error": str(e)},
            ) from e

    def purge(self, cutoff: datetime) -> int:
        return 0

    def record_outcome(self, event_id: str, report: DispatchReport) -> None:
        return None


# =============================================================================
# Deduplicator
# =============================================================================


class EventDeduplicator:
    """
    Claims event ids once per retention window and evicts old claims.

    Args:
        store: DatabaseDedupStore, CacheDedupStore or anything with the
            same claim/purge/record_outcome methods
        retention: How long a claimed id blocks re-processing
        sweep_interval: Minimum time between lazy purges triggered by
            claims; None disables lazy purging
    """

    def __init__(
        self,
        store,
        retention: timedelta = DEFAULT_RETENTION,
        sweep_interval: timedelta | None = DEFAULT_SWEEP_INTERVAL,
    ):
        self.store = store
        self.retention = retention
        self.sweep_interval = sweep_interval
        self._sweep_lock = threading.Lock()
        self._last_sweep: float | None = None

    def claim(
        self,
        event_id: str,
        *,
        event_type: str = "",
        payload: dict[str, Any] | None = None,
    ) -> bool:
        """
        Atomically claim an event id.

        Args:
            event_id: Provider event id
            event_type: Stored on the record for auditing
            payload: Stored on the record for auditing

        Returns:
            True on first sight (caller should dispatch), False for a duplicate

        Raises:
            DedupStoreUnavailableError: If the store cannot be reached
        """
        claimed = self.store.claim(
            event_id,
            event_type=event_type,
            payload=payload,
            retention=self.retention,
        )
        if claimed:
            self._maybe_sweep()
        return claimed

    def purge_expired(self) -> int:
        """
        Remove records older than the retention window.

        Returns:
            Number of records removed

        Raises:
            DedupStoreUnavailableError: If the store cannot be reached
        """
        cutoff = timezone.now() - self.retention
        deleted_count = self.store.purge(cutoff)
        self._last_sweep = time.monotonic()

        if deleted_count > 0:
            logger.info(
                f"Purged {deleted_count} expired webhook events",
                extra={
                    "deleted_count": deleted_count,
                    "cutoff_date": cutoff.isoformat(),
                },
            )
        return deleted_count

    def record_outcome(self, event_id: str, report: DispatchReport) -> None:
        """
        Store the dispatch result on the dedup record.

        The claim already stands at this point, so a store failure is
        logged rather than raised; the event will not be dispatched again.
        """
        try:
            self.store.record_outcome(event_id, report)
        except DedupStoreUnavailableError as e:
            logger.warning(
                "Could not record webhook dispatch outcome",
                extra={"event_id": event_id, "error": str(e)},
            )

    def _maybe_sweep(self) -> None:
        if self.sweep_interval is None:
            return

        now = time.monotonic()
        interval = self.sweep_interval.total_seconds()
        # Only one claimer sweeps; the others carry on
        if not self._sweep_lock.acquire(blocking=False):
            return
        try:
            if self._last_sweep is not None and now - self._last_sweep < interval:
                return
            self._last_sweep = now
            try:
                self.purge_expired()
            except DedupStoreUnavailableError as e:
                logger.warning(
                    "Lazy purge of expired webhook events failed",
                    extra={"error": str(e)},
                )
        finally:
            self._sweep_lock.release()


def build_store(backend: str):
    """Return the dedup store for a WEBHOOK_DEDUP_BACKEND value."""
    if backend == "cache":
        return CacheDedupStore()
    return DatabaseDedupStore()


def build_deduplicator(hub_settings: HubSettings | None = None) -> EventDeduplicator:
    """
    Build the configured deduplicator from settings.

    Args:
        hub_settings: Explicit settings (defaults to HubSettings.from_settings())
    """
    hub_settings = hub_settings or HubSettings.from_settings()
    return EventDeduplicator(
        build_store(hub_settings.dedup_backend),
        retention=hub_settings.dedup_retention,
    )


@functools.lru_cache(maxsize=8)
def _shared_deduplicator(hub_settings: HubSettings) -> EventDeduplicator:
    return build_deduplicator(hub_settings)


def get_deduplicator(hub_settings: HubSettings | None = None) -> EventDeduplicator:
    """
    Return the process-wide deduplicator for the given settings.

    Sharing one instance keeps the lazy sweep at one purge per interval per
    process instead of one per request.
    """
    return _shared_deduplicator(hub_settings or HubSettings.from_settings())
