"""Linear webhook handling for the agent service.

This module authenticates and parses Linear webhook deliveries:
- verify: HMAC-SHA256 signature check, payload decoding, replay check
- classify: accept AgentSessionEvent, ignore every other type
- build_prompt: derive the agent's user prompt from the session context
"""

from .classifier import classify
from .errors import VerificationError, VerificationReason, WebhookConfigurationError
from .models import (
    AcceptedEvent,
    AgentSessionEvent,
    IgnoredEvent,
    VerifiedPayload,
    WebhookEnvelope,
    WebhookType,
)
from .prompt import build_prompt
from .verifier import SIGNATURE_HEADER, compute_signature, verify

__all__ = [
    "AcceptedEvent",
    "AgentSessionEvent",
    "IgnoredEvent",
    "SIGNATURE_HEADER",
    "VerificationError",
    "VerificationReason",
    "VerifiedPayload",
    "WebhookConfigurationError",
    "WebhookEnvelope",
    "WebhookType",
    "build_prompt",
    "classify",
    "compute_signature",
    "verify",
]
