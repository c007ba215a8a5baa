"""
WebhookEvent model for webhook deduplication and audit trails.

One row per provider event id. The unique ``event_id`` constraint is the
atomic check-and-insert primitive of the database dedup store: the first
request inserts the row, every concurrent or later delivery of the same
event hits the constraint and is reported as a duplicate.

Rows also record what dispatch did, which makes the table an audit trail.
They are evicted after the retention window by the periodic sweep.

Usage:
    from payhooks.models import WebhookEvent, WebhookEventStatus

    WebhookEvent.objects.filter(status=WebhookEventStatus.FAILED)
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class WebhookEventStatus(models.TextChoices):
    """
    Processing status of a received event.

    CLAIMED: Dedup record written, dispatch not finished yet
    PROCESSED: Dispatched and every matched handler succeeded
    FAILED: Dispatched, at least one handler failed or timed out
    """

    CLAIMED = "claimed", "Claimed"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Dedup record of a received provider event.

    Processing Flow:
        1. Webhook arrives, signature verified
        2. INSERT WebhookEvent with event_id (status CLAIMED)
        3. IntegrityError -> duplicate, nothing dispatched
        4. Dispatch to matching handlers
        5. Set status to PROCESSED or FAILED with handler counts

    Fields:
        event_id: Unique provider Event ID (evt_xxx)
        event_type: Type of webhook event
        payload: Full JSON payload
        status: Processing status
        processed_at: When dispatch finished
        matched_count: Handlers that matched the event type
        failed_count: Handlers that failed or timed out
        error_message: Summary of handler failures

    Note:
        created_at is the claim time; the retention sweep filters on it.
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        help_text="Provider event type (e.g., 'invoice.payment_succeeded')",
    )

    # ==========================================================================
    # Payload
    # ==========================================================================

    payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Full webhook payload (JSON)",
    )

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.CLAIMED,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When dispatch finished",
    )

    matched_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of handlers that matched the event",
    )

    failed_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of handlers that failed or timed out",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Handler failure summary",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="payhooks_we_status_created",
            ),
            models.Index(
                fields=["event_type", "created_at"],
                name="payhooks_we_type_created",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with event ID and type."""
        return f"{self.event_id} ({self.event_type}) - {self.status}"
