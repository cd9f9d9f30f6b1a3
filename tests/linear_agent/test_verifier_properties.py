"""Property-based tests for Linear webhook signature verification.

Properties:
- A body signed with the configured secret always verifies and keeps its
  declared type tag.
- Any tampering with the body or the signature is rejected before the body
  is decoded.
- Timestamps outside the tolerance window are rejected.
"""

import json

import pytest
from hypothesis import assume, given, settings, strategies as st

from src.linear_agent.webhook import (
    VerificationError,
    VerificationReason,
    WebhookConfigurationError,
    compute_signature,
    verify,
)

SECRET = "test-webhook-secret"
NOW = 1_750_000_000.0


# =============================================================================
# Hypothesis Strategies
# =============================================================================


type_tags = st.sampled_from(
    ["AgentSessionEvent", "Issue", "Comment", "Reaction", "SomethingNew"]
)


@st.composite
def webhook_body(draw: st.DrawFn) -> bytes:
    """Generate a JSON webhook body with a type tag and arbitrary data."""
    payload = {
        "type": draw(type_tags),
        "action": draw(st.sampled_from(["create", "update", "created", "prompted"])),
        "organizationId": draw(st.uuids().map(str)),
        "data": draw(
            st.dictionaries(
                st.text(min_size=1, max_size=10),
                st.one_of(st.text(max_size=50), st.integers(), st.booleans()),
                max_size=5,
            )
        ),
    }
    return json.dumps(payload).encode("utf-8")


secrets = st.text(min_size=1, max_size=64)


# =============================================================================
# Property Tests
# =============================================================================


class TestValidSignatures:
    """Correctly signed bodies always verify."""

    @given(body=webhook_body(), secret=secrets)
    @settings(max_examples=100)
    def test_signed_body_verifies(self, body: bytes, secret: str) -> None:
        payload = verify(body, compute_signature(body, secret), secret)

        assert payload.event_type == json.loads(body)["type"]
        assert payload.body == json.loads(body)

    @given(body=webhook_body())
    @settings(max_examples=50)
    def test_signature_case_is_ignored(self, body: bytes) -> None:
        signature = compute_signature(body, SECRET).upper()

        payload = verify(body, signature, SECRET)

        assert payload.event_type == json.loads(body)["type"]


class TestTamperedSignatures:
    """Any change to body, signature, or secret is rejected."""

    @given(body=webhook_body(), extra=st.binary(min_size=1, max_size=20))
    @settings(max_examples=100)
    def test_tampered_body_rejected(self, body: bytes, extra: bytes) -> None:
        signature = compute_signature(body, SECRET)

        with pytest.raises(VerificationError) as exc_info:
            verify(body + extra, signature, SECRET)

        assert exc_info.value.reason is VerificationReason.SIGNATURE_MISMATCH

    @given(body=webhook_body(), other_secret=secrets)
    @settings(max_examples=100)
    def test_wrong_secret_rejected(self, body: bytes, other_secret: str) -> None:
        # HMAC zero-pads keys, so trailing NULs yield the same key
        assume(other_secret.rstrip("\x00") != SECRET)
        signature = compute_signature(body, other_secret)

        with pytest.raises(VerificationError) as exc_info:
            verify(body, signature, SECRET)

        assert exc_info.value.reason is VerificationReason.SIGNATURE_MISMATCH

    @given(body=webhook_body(), signature=st.text(min_size=1, max_size=80))
    @settings(max_examples=100)
    def test_arbitrary_signature_rejected(self, body: bytes, signature: str) -> None:
        assume(signature.strip())
        assume(signature.strip().lower() != compute_signature(body, SECRET))

        with pytest.raises(VerificationError) as exc_info:
            verify(body, signature, SECRET)

        assert exc_info.value.reason is VerificationReason.SIGNATURE_MISMATCH

    @given(body=st.binary(max_size=200))
    @settings(max_examples=50)
    def test_missing_signature_rejected(self, body: bytes) -> None:
        with pytest.raises(VerificationError) as exc_info:
            verify(body, None, SECRET)

        assert exc_info.value.reason is VerificationReason.MISSING_SIGNATURE

    @given(body=st.binary(max_size=200), signature=st.text(max_size=80))
    @settings(max_examples=50)
    def test_missing_secret_is_configuration_error(self, body: bytes, signature: str) -> None:
        with pytest.raises(WebhookConfigurationError) as exc_info:
            verify(body, signature, "")

        assert exc_info.value.reason is VerificationReason.MISSING_SECRET


class TestTimestampTolerance:
    """webhookTimestamp must be within the tolerance of the server clock."""

    @given(skew=st.floats(min_value=-60.0, max_value=60.0))
    @settings(max_examples=50)
    def test_timestamp_within_tolerance_accepted(self, skew: float) -> None:
        timestamp_ms = int((NOW + skew) * 1000)
        body = json.dumps({"type": "Issue", "webhookTimestamp": timestamp_ms}).encode()
        # Truncation to whole milliseconds can only move the timestamp closer
        assume(abs(NOW - timestamp_ms / 1000.0) <= 60)

        payload = verify(body, compute_signature(body, SECRET), SECRET, 60, now=NOW)

        assert payload.webhook_timestamp == timestamp_ms

    @given(skew=st.floats(min_value=61.0, max_value=86_400.0), sign=st.sampled_from([-1, 1]))
    @settings(max_examples=50)
    def test_timestamp_outside_tolerance_rejected(self, skew: float, sign: int) -> None:
        timestamp_ms = int((NOW + sign * skew) * 1000)
        body = json.dumps({"type": "Issue", "webhookTimestamp": timestamp_ms}).encode()

        with pytest.raises(VerificationError) as exc_info:
            verify(body, compute_signature(body, SECRET), SECRET, 60, now=NOW)

        assert exc_info.value.reason is VerificationReason.STALE_TIMESTAMP
