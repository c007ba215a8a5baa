"""
Tests for webhook signature verification.

Tests cover:
- Valid signatures (single secret, rotated secrets, multiple v1 entries)
- Header parsing errors
- Replay protection (tolerance window checked before the signature)
- Signature mismatches
- Payload validation after authentication
"""

import json

import pytest

from payhooks.exceptions import (
    MalformedPayloadError,
    MalformedSignatureError,
    SignatureMismatchError,
    StaleSignatureError,
    VerificationError,
)
from payhooks.tests.helpers import TEST_SECRET, make_body
from payhooks.verification import (
    compute_signature,
    generate_signature_header,
    parse_signature_header,
    verify,
)

NOW = 1_700_000_000


# =============================================================================
# Valid Requests
# =============================================================================


class TestVerifyValidSignature:
    """Tests for requests that should be accepted."""

    def test_returns_event_for_valid_signature(self):
        """Should parse id, type and payload from an authentic body."""
        body = make_body("evt_1", "invoice.payment_succeeded")
        header = generate_signature_header(body, TEST_SECRET, NOW)

        event = verify(body, header, TEST_SECRET, 300, now=NOW)

        assert event.id == "evt_1"
        assert event.type == "invoice.payment_succeeded"
        assert event.payload == json.loads(body)
        assert event.data_object == {"id": "in_123", "object": "invoice"}
        assert int(event.signed_at.timestamp()) == NOW
        assert int(event.received_at.timestamp()) == NOW

    def test_accepts_any_configured_secret(self):
        """Should accept a body signed with an older secret during rotation."""
        body = make_body()
        header = generate_signature_header(body, "whsec_old", NOW)

        event = verify(body, header, ["whsec_new", "whsec_old"], now=NOW)

        assert event.id == "evt_1"

    def test_accepts_any_v1_signature(self):
        """Should accept when one of several v1 entries matches."""
        body = make_body()
        good = compute_signature(body, TEST_SECRET, NOW)
        header = f"t={NOW},v1={'0' * 64},v1={good}"

        assert verify(body, header, TEST_SECRET, now=NOW).id == "evt_1"

    def test_ignores_v0_scheme(self):
        """Should ignore v0 entries, even when they carry garbage."""
        body = make_body()
        good = compute_signature(body, TEST_SECRET, NOW)
        header = f"t={NOW},v1={good},v0=not-a-signature"

        assert verify(body, header, TEST_SECRET, now=NOW).id == "evt_1"

    def test_within_tolerance_in_future(self):
        """Should accept small clock skew in either direction."""
        body = make_body()
        header = generate_signature_header(body, TEST_SECRET, NOW + 100)

        assert verify(body, header, TEST_SECRET, 300, now=NOW).id == "evt_1"

    def test_tolerance_none_disables_staleness_check(self):
        """Should accept old timestamps when tolerance is disabled."""
        body = make_body()
        header = generate_signature_header(body, TEST_SECRET, NOW - 86_400)

        assert verify(body, header, TEST_SECRET, None, now=NOW).id == "evt_1"


# =============================================================================
# Header Parsing
# =============================================================================


class TestSignatureHeaderParsing:
    """Tests for malformed signature headers."""

    @pytest.mark.parametrize(
        "header",
        [
            "",
            "   ",
            "v1=abcdef",
            f"t={NOW}",
            f"t={NOW},v0=abcdef",
            "t=yesterday,v1=abcdef",
            "garbage",
        ],
    )
    def test_malformed_headers_rejected(self, header):
        """Should raise MalformedSignatureError for unusable headers."""
        with pytest.raises(MalformedSignatureError):
            verify(make_body(), header, TEST_SECRET, now=NOW)

    def test_parse_collects_all_v1_entries(self):
        """Should return the timestamp and every v1 signature in order."""
        timestamp, signatures = parse_signature_header(f"t={NOW},v1=aa,v0=bb,v1=cc")

        assert timestamp == NOW
        assert signatures == ["aa", "cc"]


# =============================================================================
# Replay Protection
# =============================================================================


class TestStaleSignature:
    """Tests for the tolerance window."""

    def test_stale_timestamp_rejected(self):
        """Should reject a correctly signed body older than the tolerance."""
        body = make_body()
        header = generate_signature_header(body, TEST_SECRET, NOW - 301)

        with pytest.raises(StaleSignatureError):
            verify(body, header, TEST_SECRET, 300, now=NOW)

    def test_stale_checked_before_signature(self):
        """Should report staleness even when the signature is also wrong."""
        body = make_body()
        header = f"t={NOW - 10_000},v1={'0' * 64}"

        with pytest.raises(StaleSignatureError):
            verify(body, header, TEST_SECRET, 300, now=NOW)

    def test_far_future_timestamp_rejected(self):
        """Should reject timestamps too far ahead of now."""
        body = make_body()
        header = generate_signature_header(body, TEST_SECRET, NOW + 301)

        with pytest.raises(StaleSignatureError):
            verify(body, header, TEST_SECRET, 300, now=NOW)


# =============================================================================
# Signature Mismatch
# =============================================================================


class TestSignatureMismatch:
    """Tests for signatures that don't match."""

    def test_wrong_secret_rejected(self):
        """Should reject a body signed with an unknown secret."""
        body = make_body()
        header = generate_signature_header(body, "whsec_attacker", NOW)

        with pytest.raises(SignatureMismatchError):
            verify(body, header, TEST_SECRET, now=NOW)

    def test_tampered_body_rejected(self):
        """Should reject when the body changed after signing."""
        body = make_body("evt_1")
        header = generate_signature_header(body, TEST_SECRET, NOW)

        with pytest.raises(SignatureMismatchError):
            verify(make_body("evt_2"), header, TEST_SECRET, now=NOW)

    def test_signature_bound_to_timestamp(self):
        """Should reject a signature moved onto a different timestamp."""
        body = make_body()
        signature = compute_signature(body, TEST_SECRET, NOW - 60)
        header = f"t={NOW},v1={signature}"

        with pytest.raises(SignatureMismatchError):
            verify(body, header, TEST_SECRET, now=NOW)

    @pytest.mark.parametrize("position", [0, 31, 63])
    def test_single_character_change_rejected(self, position):
        """Should reject a valid signature with one hex digit flipped."""
        body = make_body()
        signature = compute_signature(body, TEST_SECRET, NOW)
        flipped = "1" if signature[position] == "0" else "0"
        mutated = signature[:position] + flipped + signature[position + 1 :]
        header = f"t={NOW},v1={mutated}"

        with pytest.raises(SignatureMismatchError):
            verify(body, header, TEST_SECRET, now=NOW)

    @pytest.mark.parametrize("signature", ["é", "éé", "ü" * 64])
    def test_non_ascii_signature_rejected(self, signature):
        """Should reject non-ASCII signature values as a mismatch."""
        body = make_body()
        header = f"t={NOW},v1={signature}"

        with pytest.raises(SignatureMismatchError):
            verify(body, header, TEST_SECRET, now=NOW)

    def test_no_secret_configured_rejected(self):
        """Should reject everything when no secret is configured."""
        body = make_body()
        header = generate_signature_header(body, TEST_SECRET, NOW)

        with pytest.raises(SignatureMismatchError):
            verify(body, header, [], now=NOW)


# =============================================================================
# Payload Validation
# =============================================================================


class TestMalformedPayload:
    """Tests for authentic bodies that are not events."""

    @pytest.mark.parametrize(
        "body",
        [
            b"not json",
            b"[1, 2, 3]",
            b'{"type": "invoice.paid"}',
            b'{"id": "evt_1"}',
            b'{"id": 123, "type": "invoice.paid"}',
            b'{"id": "evt_1", "type": ""}',
        ],
    )
    def test_malformed_payload_rejected(self, body):
        """Should raise MalformedPayloadError for non-event bodies."""
        header = generate_signature_header(body, TEST_SECRET, NOW)

        with pytest.raises(MalformedPayloadError):
            verify(body, header, TEST_SECRET, now=NOW)

    def test_malformed_payload_is_verification_error(self):
        """Should be catchable as a VerificationError (HTTP 400)."""
        body = b"not json"
        header = generate_signature_header(body, TEST_SECRET, NOW)

        with pytest.raises(VerificationError) as exc_info:
            verify(body, header, TEST_SECRET, now=NOW)

        assert exc_info.value.error_code == "MALFORMED_PAYLOAD"
