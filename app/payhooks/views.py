"""
Webhook endpoint view.

This module provides the HTTP endpoint for receiving payment provider
webhooks. The view:
1. Reads the raw body and the signature header
2. Runs the request through WebhookService (verify, dedup, dispatch)
3. Translates the outcome into a status code the provider understands

Dispatch runs inside the request so that a 200 means subscribers have
been invoked. Handler failures do not change the answer; they are
recorded on the WebhookEvent row.

Usage:
    # In urls.py
    from payhooks.views import payment_webhook

    urlpatterns = [
        path("webhook", payment_webhook, name="payment_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payhooks.apps import get_registry
from payhooks.conf import HubSettings
from payhooks.exceptions import DedupStoreUnavailableError, VerificationError
from payhooks.services import WebhookService


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def payment_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive, verify and dispatch a provider webhook event.

    Security:
    - Signature verification prevents spoofed webhooks
    - Signed timestamp tolerance prevents replays
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - Each event id is claimed once; re-deliveries are answered without
      invoking subscribers again

    Returns:
        JsonResponse with status:
        - 200: Event dispatched (whatever the handlers did)
        - 200 (or WEBHOOK_DUPLICATE_STATUS): Event already processed
        - 400: Missing or invalid signature, or malformed event
        - 503: Dedup store unavailable; the provider should retry

    Example signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    hub_settings = HubSettings.from_settings()
    signature = request.headers.get(hub_settings.signature_header, "")

    if not signature:
        logger.warning(
            f"Webhook received without {hub_settings.signature_header} header"
        )
        return JsonResponse(
            {"error": "Missing signature", "error_code": "MISSING_SIGNATURE"},
            status=400,
        )

    service = WebhookService.from_settings(
        registry=get_registry(),
        hub_settings=hub_settings,
    )

    try:
        result = service.process(request.body, signature)
    except VerificationError as e:
        logger.warning(
            "Webhook verification failed",
            extra={"error": str(e), "error_code": e.error_code},
        )
        return JsonResponse(e.to_dict(), status=400)
    except DedupStoreUnavailableError as e:
        return JsonResponse(e.to_dict(), status=503)

    if result.is_duplicate:
        return JsonResponse(
            {"status": "duplicate", "event_id": result.event.id},
            status=hub_settings.duplicate_status,
        )

    report = result.report
    return JsonResponse(
        {
            "status": result.status,
            "event_id": report.event_id,
            "event_type": report.event_type,
            "matched_count": report.matched_count,
            "failed_count": report.failed_count,
        },
        status=200,
    )
