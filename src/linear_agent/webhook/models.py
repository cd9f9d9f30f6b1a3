"""Linear webhook models for the agent service.

This module defines the data models for inbound Linear webhooks:
- WebhookEnvelope: the raw, unverified request (body bytes + signature)
- VerifiedPayload: a decoded payload whose signature has been checked
- WebhookType: the closed set of upstream webhook type tags
- AgentSessionEvent: the one variant the service acts upon
- AcceptedEvent / IgnoredEvent: the result of classification

Linear AgentSessionEvent payload structure (abridged):
{
  "type": "AgentSessionEvent",
  "action": "created",
  "organizationId": "org-uuid",
  "webhookTimestamp": 1718000000000,
  "agentSession": {
    "id": "session-uuid",
    "issue": {"id": "...", "title": "Fix login bug"},
    "comment": {"id": "...", "body": "Users report 500 errors"}
  }
}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class WebhookType(str, Enum):
    """Webhook type tags declared by Linear.

    Only AGENT_SESSION_EVENT is acted upon. Tags that Linear adds later
    map to UNKNOWN through parse() and are ignored by the classifier.
    """

    AGENT_SESSION_EVENT = "AgentSessionEvent"
    ISSUE = "Issue"
    COMMENT = "Comment"
    ISSUE_LABEL = "IssueLabel"
    REACTION = "Reaction"
    PROJECT = "Project"
    PROJECT_UPDATE = "ProjectUpdate"
    CYCLE = "Cycle"
    ATTACHMENT = "Attachment"
    DOCUMENT = "Document"
    INITIATIVE = "Initiative"
    CUSTOMER = "Customer"
    CUSTOMER_NEED = "CustomerNeed"
    USER = "User"
    OAUTH_APP = "OAuthApp"
    APP_USER_NOTIFICATION = "AppUserNotification"
    PERMISSION_CHANGE = "PermissionChange"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str) -> "WebhookType":
        """Map a raw type tag onto a member, falling back to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class WebhookEnvelope:
    """Raw webhook request as received, before verification."""

    raw_body: bytes
    signature: str


class VerifiedPayload(BaseModel):
    """Decoded webhook payload whose signature has been verified.

    Instances are only created by the signature verifier. The full decoded
    JSON object is kept in ``body`` so the classifier can build the typed
    variant from it.

    Attributes:
        event_type: The raw ``type`` tag declared by the payload.
        action: The payload ``action`` (e.g. created, prompted), if any.
        organization_id: The Linear organization the event belongs to.
        webhook_timestamp: Sender timestamp in epoch milliseconds, if any.
        body: The decoded JSON object.
    """

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(..., min_length=1)
    action: Optional[str] = None
    organization_id: Optional[str] = None
    webhook_timestamp: Optional[int] = None
    body: Dict[str, Any] = Field(default_factory=dict)

    @property
    def webhook_type(self) -> WebhookType:
        return WebhookType.parse(self.event_type)


class _LinearModel(BaseModel):
    """Base for models parsed from Linear's camelCase payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class SessionIssue(_LinearModel):
    id: Optional[str] = None
    identifier: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None


class SessionComment(_LinearModel):
    id: Optional[str] = None
    body: Optional[str] = None


class AgentSession(_LinearModel):
    """The agent session an AgentSessionEvent refers to."""

    id: str = Field(..., min_length=1)
    issue: Optional[SessionIssue] = None
    comment: Optional[SessionComment] = None


class AgentSessionEvent(_LinearModel):
    """Parsed Linear AgentSessionEvent webhook.

    The organization and session identifiers are always present; the issue
    and comment context may both be absent.
    """

    organization_id: str = Field(..., min_length=1, alias="organizationId")
    action: Optional[str] = None
    agent_session: AgentSession = Field(..., alias="agentSession")
    webhook_timestamp: Optional[int] = Field(default=None, alias="webhookTimestamp")

    @property
    def session_id(self) -> str:
        return self.agent_session.id

    @property
    def issue_title(self) -> Optional[str]:
        issue = self.agent_session.issue
        return issue.title if issue is not None else None

    @property
    def comment_body(self) -> Optional[str]:
        comment = self.agent_session.comment
        return comment.body if comment is not None else None


@dataclass(frozen=True)
class AcceptedEvent:
    """Classification result for an event the service acts upon."""

    event: AgentSessionEvent


@dataclass(frozen=True)
class IgnoredEvent:
    """Classification result for a verified event that needs no action."""

    event_type: str


Classification = Union[AcceptedEvent, IgnoredEvent]
