"""Errors raised while authenticating and parsing webhooks."""

from enum import Enum
from typing import Optional


class VerificationReason(str, Enum):
    """Reason codes for rejected webhooks."""

    MISSING_SECRET = "missing-secret"
    MISSING_SIGNATURE = "missing-signature"
    SIGNATURE_MISMATCH = "signature-mismatch"
    MALFORMED_PAYLOAD = "malformed-payload"
    STALE_TIMESTAMP = "stale-timestamp"


class WebhookConfigurationError(Exception):
    """Raised when a secret required to process webhooks is not configured.

    This is a deployment problem rather than a bad request, so it is kept
    apart from VerificationError.

    Attributes:
        setting: Name of the missing setting.
        message: Human-readable error description.
        reason: Always VerificationReason.MISSING_SECRET.
    """

    reason = VerificationReason.MISSING_SECRET

    def __init__(self, setting: str, message: Optional[str] = None):
        self.setting = setting
        self.message = message or f"{setting} is not configured"
        super().__init__(self.message)


class VerificationError(Exception):
    """Raised when a webhook fails signature or payload verification.

    Attributes:
        reason: The reason code for the rejection.
        message: Human-readable error description.
    """

    def __init__(self, reason: VerificationReason, message: Optional[str] = None):
        self.reason = reason
        self.message = message or reason.value
        super().__init__(self.message)
