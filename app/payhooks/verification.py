"""
Webhook signature verification.

Authenticates inbound provider requests using the Stripe signing scheme:

    Stripe-Signature: t=1614556800,v1=5257a869...,v0=6ffbb59b...

The signed payload is ``"<t>." + raw_body``, signed with HMAC-SHA256 and
hex encoded. Only ``v1`` entries are considered; the provider may send
several (while it rolls secrets) and any match is accepted. On our side
several secrets may be configured for the same reason.

The timestamp is checked before the signature so that a correctly signed
request replayed outside the tolerance window is still rejected.

Everything in this module is pure: no database, cache or settings access.

Usage:
    from payhooks.verification import verify

    event = verify(
        request.body,
        request.headers.get("Stripe-Signature", ""),
        secret=["whsec_new", "whsec_old"],
        tolerance_seconds=300,
    )
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from payhooks.exceptions import (
    MalformedPayloadError,
    MalformedSignatureError,
    SignatureMismatchError,
    StaleSignatureError,
)
from payhooks.types import Event

if TYPE_CHECKING:
    from collections.abc import Sequence


logger = logging.getLogger(__name__)

SIGNATURE_SCHEME = "v1"

DEFAULT_TOLERANCE_SECONDS = 300


# =============================================================================
# Signing Helpers
# =============================================================================


def compute_signature(raw_body: bytes, secret: str, timestamp: int) -> str:
    """
    Compute the hex HMAC-SHA256 signature for a body and timestamp.

    Args:
        raw_body: Exact request body bytes
        secret: Shared signing secret
        timestamp: Unix timestamp included in the signed payload

    Returns:
        Lowercase hex digest
    """
    signed_payload = f"{timestamp}.".encode() + raw_body
    return hmac.new(
        secret.encode("utf-8"),
        signed_payload,
        hashlib.sha256,
    ).hexdigest()


def generate_signature_header(
    raw_body: bytes,
    secret: str,
    timestamp: int | None = None,
) -> str:
    """
    Build a signature header value, as the provider would send it.

    Used by tests and local tooling to produce signed requests.
    """
    if timestamp is None:
        timestamp = int(time.time())
    signature = compute_signature(raw_body, secret, timestamp)
    return f"t={timestamp},{SIGNATURE_SCHEME}={signature}"


def parse_signature_header(header: str) -> tuple[int, list[str]]:
    """
    Split a signature header into its timestamp and v1 signatures.

    Unknown schemes (v0, future versions) are ignored.

    Raises:
        MalformedSignatureError: Empty header, missing or non-integer
            timestamp, or no v1 signature
    """
    if not header or not header.strip():
        raise MalformedSignatureError("Missing signature header")

    timestamp: int | None = None
    signatures: list[str] = []

    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise MalformedSignatureError(
                    "Signature timestamp is not an integer",
                    details={"timestamp": value},
                ) from None
        elif key == SIGNATURE_SCHEME and value:
            signatures.append(value)

    if timestamp is None:
        raise MalformedSignatureError("Signature header has no timestamp")
    if not signatures:
        raise MalformedSignatureError(
            f"Signature header has no {SIGNATURE_SCHEME} signature"
        )

    return timestamp, signatures


# =============================================================================
# Verification
# =============================================================================


def verify(
    raw_body: bytes,
    signature_header: str,
    secret: str | Sequence[str],
    tolerance_seconds: int | None = DEFAULT_TOLERANCE_SECONDS,
    *,
    now: float | None = None,
) -> Event:
    """
    Authenticate a webhook request and parse it into an Event.

    Args:
        raw_body: Exact request body bytes (never re-serialized JSON)
        signature_header: Value of the signature header
        secret: Signing secret, or several secrets during rotation
        tolerance_seconds: Maximum distance between the signed timestamp
            and ``now``, in either direction; None disables the check
        now: Current Unix time (defaults to ``time.time()``)

    Returns:
        The verified Event

    Raises:
        MalformedSignatureError: Header missing or unparseable
        StaleSignatureError: Timestamp outside the tolerance window
        SignatureMismatchError: No signature matches any secret
        MalformedPayloadError: Body is not a JSON object with string id/type
    """
    if now is None:
        now = time.time()

    timestamp, signatures = parse_signature_header(signature_header)

    if tolerance_seconds is not None and abs(now - timestamp) > tolerance_seconds:
        raise StaleSignatureError(
            "Signature timestamp outside tolerance",
            details={"tolerance_seconds": tolerance_seconds},
        )

    secrets = [secret] if isinstance(secret, str) else list(secret)
    secrets = [s for s in secrets if s]
    if not secrets:
        logger.warning("Webhook secret not configured, rejecting request")
        raise SignatureMismatchError("No webhook signing secret configured")

    if not _any_signature_matches(raw_body, timestamp, signatures, secrets):
        raise SignatureMismatchError("No signatures found matching the expected signature")

    payload = _parse_payload(raw_body)

    return Event(
        id=payload["id"],
        type=payload["type"],
        payload=payload,
        received_at=datetime.fromtimestamp(now, tz=timezone.utc),
        signed_at=datetime.fromtimestamp(timestamp, tz=timezone.utc),
    )


def _any_signature_matches(
    raw_body: bytes,
    timestamp: int,
    signatures: list[str],
    secrets: list[str],
) -> bool:
    # Compare every pair so timing doesn't reveal which secret matched
    matched = False
    for secret in secrets:
        expected = compute_signature(raw_body, secret, timestamp)
        for signature in signatures:
            # Bytes, since compare_digest rejects non-ASCII str
            if hmac.compare_digest(
                expected.encode("ascii"),
                signature.encode("utf-8", "surrogateescape"),
            ):
                matched = True
    return matched


def _parse_payload(raw_body: bytes) -> dict:
    try:
        payload = json.loads(raw_body)
    except (UnicodeDecodeError, ValueError):
        raise MalformedPayloadError("Webhook body is not valid JSON") from None

    if not isinstance(payload, dict):
        raise MalformedPayloadError("Webhook body must be a JSON object")

    event_id = payload.get("id")
    event_type = payload.get("type")
    if not isinstance(event_id, str) or not event_id:
        raise MalformedPayloadError("Webhook event has no id")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedPayloadError(
            "Webhook event has no type",
            details={"event_id": event_id},
        )

    return payload
