"""
Tests for webhook hub Celery tasks.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from payhooks.exceptions import DedupStoreUnavailableError
from payhooks.models import WebhookEvent
from payhooks.tasks import purge_expired_webhook_events
from payhooks.tests.factories import WebhookEventFactory


class TestPurgeExpiredWebhookEvents:
    """Tests for the periodic dedup sweep."""

    def test_deletes_expired_records(self, db, settings):
        """Should delete records older than the retention window."""
        settings.WEBHOOK_DEDUP_RETENTION_DAYS = 7
        expired = WebhookEventFactory(processed=True)
        recent = WebhookEventFactory()
        WebhookEvent.objects.filter(pk=expired.pk).update(
            created_at=timezone.now() - timedelta(days=8)
        )

        result = purge_expired_webhook_events()

        assert result == {"deleted_count": 1}
        assert not WebhookEvent.objects.filter(pk=expired.pk).exists()
        assert WebhookEvent.objects.filter(pk=recent.pk).exists()

    def test_nothing_to_delete(self, db):
        """Should report zero when every record is recent."""
        WebhookEventFactory()

        assert purge_expired_webhook_events() == {"deleted_count": 0}

    def test_store_outage_fails_task(self, db):
        """Should let the outage surface so the task is reported as failed."""
        with patch(
            "payhooks.dedup.DatabaseDedupStore.purge",
            side_effect=DedupStoreUnavailableError("Dedup database unavailable"),
        ):
            with pytest.raises(DedupStoreUnavailableError):
                purge_expired_webhook_events()

    def test_scheduled_in_beat(self, settings):
        """Should be registered in the beat schedule."""
        tasks = [entry["task"] for entry in settings.CELERY_BEAT_SCHEDULE.values()]

        assert "payhooks.tasks.purge_expired_webhook_events" in tasks
