"""
Celery tasks for the webhook hub.

Usage:
    from payhooks.tasks import purge_expired_webhook_events

    # Scheduled hourly via CELERY_BEAT_SCHEDULE; can be run by hand:
    purge_expired_webhook_events.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from payhooks.dedup import get_deduplicator

logger = logging.getLogger(__name__)


@shared_task
def purge_expired_webhook_events() -> dict:
    """
    Periodic task to evict dedup records older than the retention window.

    Complements the lazy purge done on claims, so the table stays bounded
    even when no webhooks arrive. A store outage fails the task; the next
    run picks up where this one left off.

    Returns:
        Dict with count of records deleted
    """
    deduplicator = get_deduplicator()
    deleted_count = deduplicator.purge_expired()

    logger.info(
        "Webhook dedup sweep finished",
        extra={
            "deleted_count": deleted_count,
            "retention_days": deduplicator.retention.days,
        },
    )
    return {"deleted_count": deleted_count}
