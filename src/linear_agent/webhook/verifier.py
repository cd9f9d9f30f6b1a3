"""Linear webhook signature verification.

Linear signs every webhook delivery with the signing secret of the webhook
and sends the hex-encoded HMAC-SHA256 of the raw request body in the
``linear-signature`` header. The body is only decoded once the signature
matches, so nothing downstream ever sees unauthenticated data.

Payloads also carry ``webhookTimestamp`` (epoch milliseconds). When present
it must be within the configured tolerance of the local clock, which stops
a captured delivery from being replayed later.
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Optional

from src.linear_agent.webhook.errors import (
    VerificationError,
    VerificationReason,
    WebhookConfigurationError,
)
from src.linear_agent.webhook.models import VerifiedPayload, WebhookEnvelope

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "linear-signature"

DEFAULT_TIMESTAMP_TOLERANCE_SECONDS = 60


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Compute the hex HMAC-SHA256 signature Linear sends for a body."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify(
    raw_body: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance_seconds: int = DEFAULT_TIMESTAMP_TOLERANCE_SECONDS,
    now: Optional[float] = None,
) -> VerifiedPayload:
    """Verify a webhook delivery and decode its payload.

    Args:
        raw_body: The request body exactly as received.
        signature_header: Value of the ``linear-signature`` header.
        secret: The webhook signing secret.
        tolerance_seconds: Allowed distance between ``webhookTimestamp``
            and ``now``. Zero disables the timestamp check.
        now: Current time in epoch seconds (defaults to ``time.time()``).

    Returns:
        The verified payload tagged with its declared event type.

    Raises:
        WebhookConfigurationError: If ``secret`` is empty.
        VerificationError: If the signature is missing or wrong, the body is
            not a JSON object with a ``type`` tag, or the timestamp is stale.
    """
    if not secret:
        raise WebhookConfigurationError("linear_webhook_secret")

    envelope = WebhookEnvelope(raw_body=raw_body, signature=(signature_header or "").strip())
    _check_signature(envelope, secret)

    payload = _decode_payload(envelope.raw_body)

    if tolerance_seconds > 0 and payload.webhook_timestamp is not None:
        _check_timestamp(payload.webhook_timestamp, tolerance_seconds, now)

    logger.debug(
        "Webhook verified",
        extra={"event_type": payload.event_type, "action": payload.action},
    )
    return payload


def _check_signature(envelope: WebhookEnvelope, secret: str) -> None:
    if not envelope.signature:
        logger.warning("Webhook rejected: no signature header")
        raise VerificationError(
            VerificationReason.MISSING_SIGNATURE,
            "Missing linear-signature header",
        )

    expected = compute_signature(envelope.raw_body, secret)
    # Compare bytes: compare_digest rejects non-ASCII str input
    provided = envelope.signature.lower().encode("utf-8")
    if not hmac.compare_digest(expected.encode("ascii"), provided):
        logger.warning(
            "Webhook rejected: signature mismatch",
            extra={"body_length": len(envelope.raw_body)},
        )
        raise VerificationError(
            VerificationReason.SIGNATURE_MISMATCH,
            "Invalid webhook signature",
        )


def _decode_payload(raw_body: bytes) -> VerifiedPayload:
    try:
        data: Any = json.loads(raw_body)
    except ValueError as e:
        raise VerificationError(
            VerificationReason.MALFORMED_PAYLOAD,
            f"Webhook body is not valid JSON: {e}",
        ) from e

    if not isinstance(data, dict):
        raise VerificationError(
            VerificationReason.MALFORMED_PAYLOAD,
            "Webhook body must be a JSON object",
        )

    event_type = data.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise VerificationError(
            VerificationReason.MALFORMED_PAYLOAD,
            "Webhook payload has no type",
        )

    timestamp = data.get("webhookTimestamp")
    if timestamp is not None and (
        isinstance(timestamp, bool) or not isinstance(timestamp, int)
    ):
        raise VerificationError(
            VerificationReason.MALFORMED_PAYLOAD,
            "webhookTimestamp must be an integer",
        )

    action = data.get("action")
    organization_id = data.get("organizationId")

    return VerifiedPayload(
        event_type=event_type,
        action=action if isinstance(action, str) else None,
        organization_id=organization_id if isinstance(organization_id, str) else None,
        webhook_timestamp=timestamp,
        body=data,
    )


def _check_timestamp(
    timestamp_ms: int,
    tolerance_seconds: int,
    now: Optional[float],
) -> None:
    current = time.time() if now is None else now
    skew = abs(current - timestamp_ms / 1000.0)
    if skew > tolerance_seconds:
        logger.warning(
            "Webhook rejected: stale timestamp",
            extra={"skew_seconds": round(skew, 3), "tolerance": tolerance_seconds},
        )
        raise VerificationError(
            VerificationReason.STALE_TIMESTAMP,
            f"Webhook timestamp is {skew:.0f}s away from server time",
        )
