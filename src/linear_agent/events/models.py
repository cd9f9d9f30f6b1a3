"""Dispatch event models for observability.

Dispatches run after the webhook response has been sent, so their outcome
is only visible through these events (logs and metrics).

- EventType: Enum of dispatch lifecycle events
- DispatchEvent: Structured event with the session and organization
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Lifecycle events of a background dispatch.

    Every dispatch emits DISPATCH_STARTED followed by exactly one of
    DISPATCH_SUCCEEDED or DISPATCH_FAILED.
    """

    DISPATCH_STARTED = "dispatch_started"
    DISPATCH_SUCCEEDED = "dispatch_succeeded"
    DISPATCH_FAILED = "dispatch_failed"


class DispatchEvent(BaseModel):
    """Structured event emitted by the dispatcher.

    Details Field Conventions:
        For DISPATCH_STARTED events:
            - prompt_length: Length of the derived prompt

        For DISPATCH_SUCCEEDED events:
            - duration_seconds: Time spent in the agent

        For DISPATCH_FAILED events:
            - duration_seconds: Time spent before the failure
            - error_type: Exception class name
            - error_message: Exception message
    """

    event_type: EventType

    session_id: str = Field(..., min_length=1)

    organization_id: str = Field(..., min_length=1)

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    details: Dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> Dict[str, Any]:
        """Flatten the event for use as logging ``extra`` fields."""
        return {
            "event_type": self.event_type.value,
            "session_id": self.session_id,
            "organization_id": self.organization_id,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
