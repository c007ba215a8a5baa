"""
Factory Boy factories for webhook hub test data.

Usage:
    from payhooks.tests.factories import WebhookEventFactory

    # A freshly claimed event
    event = WebhookEventFactory()

    # A dispatched event
    event = WebhookEventFactory(processed=True)
"""

import factory
from django.utils import timezone

from payhooks.models import WebhookEvent, WebhookEventStatus


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating WebhookEvent dedup records.

    Generates a unique provider event id and a minimal Stripe-shaped payload.
    """

    class Meta:
        model = WebhookEvent

    event_id = factory.Sequence(lambda n: f"evt_test_{n:08d}")
    event_type = "invoice.payment_succeeded"
    payload = factory.LazyAttribute(
        lambda o: {
            "id": o.event_id,
            "type": o.event_type,
            "data": {"object": {"id": "in_test_123", "object": "invoice"}},
        }
    )
    status = WebhookEventStatus.CLAIMED

    class Params:
        processed = factory.Trait(
            status=WebhookEventStatus.PROCESSED,
            processed_at=factory.LazyFunction(timezone.now),
            matched_count=1,
        )
