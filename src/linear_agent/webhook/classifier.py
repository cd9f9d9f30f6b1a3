"""Event classification for verified Linear webhooks.

Linear delivers every webhook type subscribed to by the OAuth application
to the same URL. The service only acts on AgentSessionEvent deliveries;
everything else is acknowledged and dropped.
"""

import logging

from pydantic import ValidationError

from src.linear_agent.webhook.errors import VerificationError, VerificationReason
from src.linear_agent.webhook.models import (
    AcceptedEvent,
    AgentSessionEvent,
    Classification,
    IgnoredEvent,
    VerifiedPayload,
    WebhookType,
)

logger = logging.getLogger(__name__)


def classify(payload: VerifiedPayload) -> Classification:
    """Classify a verified payload by its declared type.

    Args:
        payload: A payload returned by the signature verifier.

    Returns:
        AcceptedEvent with the parsed AgentSessionEvent, or IgnoredEvent for
        every other type tag (including tags unknown to this service).

    Raises:
        VerificationError: If an AgentSessionEvent payload lacks its
            organization or session identifier.
    """
    webhook_type = payload.webhook_type

    if webhook_type is WebhookType.AGENT_SESSION_EVENT:
        try:
            event = AgentSessionEvent.model_validate(payload.body)
        except ValidationError as e:
            raise VerificationError(
                VerificationReason.MALFORMED_PAYLOAD,
                f"Invalid AgentSessionEvent payload: {e.error_count()} validation error(s)",
            ) from e
        return AcceptedEvent(event=event)

    logger.debug(
        "Ignoring webhook type: %s",
        payload.event_type,
        extra={"webhook_type": webhook_type.value},
    )
    return IgnoredEvent(event_type=payload.event_type)
