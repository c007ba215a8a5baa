"""
Shared helpers for webhook hub tests.

Recording handlers and providers, payload builders and request signing.
Fixtures built on these live in conftest.py.
"""

import json
import time

from core.services import ServiceResult
from payhooks.types import Event
from payhooks.verification import generate_signature_header

TEST_SECRET = "whsec_test_secret"


# =============================================================================
# Recording Subscribers
# =============================================================================


class RecordingHandler:
    """Handler that remembers every event it was given."""

    def __init__(self, name=None, result=None):
        if name:
            self.name = name
        self.result = result
        self.events = []

    def handle(self, event):
        self.events.append(event)
        return self.result

    @property
    def call_count(self):
        return len(self.events)


class FailingHandler:
    """Handler that always raises."""

    name = "failing_handler"

    def __init__(self, exc=None):
        self.exc = exc or RuntimeError("handler exploded")
        self.calls = 0

    def handle(self, event):
        self.calls += 1
        raise self.exc


class FailedResultHandler:
    """Handler that reports failure through a ServiceResult."""

    name = "failed_result_handler"

    def handle(self, event):
        return ServiceResult.failure("Invoice not found", error_code="INVOICE_NOT_FOUND")


class StaticProvider:
    """Metadata provider returning a fixed mapping."""

    def __init__(self, name, output):
        self.name = name
        self.output = output

    def contribute(self, object_type, context):
        return self.output


# =============================================================================
# Payloads & Signing
# =============================================================================


def make_payload(event_id="evt_1", event_type="invoice.payment_succeeded", **extra):
    """Build a Stripe-shaped event body."""
    payload = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "livemode": False,
        "data": {"object": {"id": "in_123", "object": "invoice"}},
    }
    payload.update(extra)
    return payload


def make_body(event_id="evt_1", event_type="invoice.payment_succeeded", **extra):
    """Serialize an event body exactly as it will be signed."""
    return json.dumps(make_payload(event_id, event_type, **extra)).encode()


def make_event(event_id="evt_1", event_type="invoice.payment_succeeded"):
    """Build a verified Event without going through signature checks."""
    from django.utils import timezone

    return Event(
        id=event_id,
        type=event_type,
        payload=make_payload(event_id, event_type),
        received_at=timezone.now(),
    )


def sign(body, secret=TEST_SECRET, timestamp=None):
    """Signature header for ``body`` signed now (or at ``timestamp``)."""
    if timestamp is None:
        timestamp = int(time.time())
    return generate_signature_header(body, secret, timestamp)
