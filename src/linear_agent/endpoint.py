"""Webhook ingestion endpoint orchestrating verification through dispatch.

Drives one Linear webhook delivery through the ingestion stages:

    RECEIVING_BODY → VERIFYING → CLASSIFYING → (IGNORED)
    → RESOLVING_CREDENTIAL → BUILDING_PROMPT → SCHEDULING → RESPONDED

Each stage only runs after the previous one succeeded, and every path
produces exactly one WebhookResponse. Scheduling is the only stage that
responds before its work (the agent dispatch) has finished.

Configuration preconditions are checked before the body is read: a
missing signing secret or agent API key fails the request without
touching the payload.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from src.linear_agent.config import AgentSettings
from src.linear_agent.dispatch.dispatcher import DispatchTask, Dispatcher, TaskScheduler
from src.linear_agent.events.metrics import AgentMetrics
from src.linear_agent.oauth.resolver import CredentialNotFoundError, CredentialResolver
from src.linear_agent.webhook.classifier import classify
from src.linear_agent.webhook.errors import VerificationError
from src.linear_agent.webhook.models import IgnoredEvent
from src.linear_agent.webhook.prompt import build_prompt
from src.linear_agent.webhook.verifier import verify

logger = logging.getLogger(__name__)

BodyReader = Callable[[], Awaitable[bytes]]


class IngestionStage(str, Enum):
    """Stages a webhook delivery passes through."""

    RECEIVING_BODY = "receiving_body"
    VERIFYING = "verifying"
    CLASSIFYING = "classifying"
    IGNORED = "ignored"
    RESOLVING_CREDENTIAL = "resolving_credential"
    BUILDING_PROMPT = "building_prompt"
    SCHEDULING = "scheduling"
    RESPONDED = "responded"


@dataclass(frozen=True)
class WebhookResponse:
    """Plain-text HTTP response produced by the endpoint."""

    status_code: int
    message: str


HANDLED = WebhookResponse(200, "Webhook handled")
NON_AGENT_EVENT = WebhookResponse(200, "Webhook received (non-agent event)")
SECRET_NOT_CONFIGURED = WebhookResponse(500, "Webhook secret not configured")
API_KEY_NOT_CONFIGURED = WebhookResponse(500, "OpenAI API key not configured")
TOKEN_NOT_FOUND = WebhookResponse(500, "Linear OAuth token not found")


class WebhookEndpoint:
    """Handles POST /webhook deliveries.

    Attributes:
        settings: Service configuration holding the required secrets.
        resolver: Resolves the organization's Linear credential.
        dispatcher: Schedules the agent outside the request.
        metrics: Optional metrics recorder for delivery outcomes.
    """

    def __init__(
        self,
        settings: AgentSettings,
        resolver: CredentialResolver,
        dispatcher: Dispatcher,
        metrics: Optional[AgentMetrics] = None,
    ):
        self.settings = settings
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.metrics = metrics

    def check_configuration(self) -> Optional[WebhookResponse]:
        """Return an error response if a required secret is missing."""
        if not self.settings.linear_webhook_secret:
            logger.error("LINEAR_WEBHOOK_SECRET not configured")
            return SECRET_NOT_CONFIGURED
        if not self.settings.openai_api_key:
            logger.error("OPENAI_API_KEY not configured")
            return API_KEY_NOT_CONFIGURED
        return None

    async def handle(
        self,
        receive_body: BodyReader,
        signature: Optional[str],
        scheduler: TaskScheduler,
    ) -> WebhookResponse:
        """Process one webhook delivery.

        Args:
            receive_body: Coroutine function returning the raw request body.
            signature: The ``linear-signature`` header value, if present.
            scheduler: Runs the dispatch after the response is sent.

        Returns:
            The response to send to Linear.
        """
        misconfigured = self.check_configuration()
        if misconfigured is not None:
            return self._respond(misconfigured, "not_configured")

        stage = IngestionStage.RECEIVING_BODY
        try:
            raw_body = await receive_body()
            logger.info("Webhook received", extra={"body_length": len(raw_body)})

            stage = IngestionStage.VERIFYING
            payload = verify(
                raw_body,
                signature,
                self.settings.linear_webhook_secret,
                tolerance_seconds=self.settings.webhook_timestamp_tolerance_seconds,
            )

            stage = IngestionStage.CLASSIFYING
            classification = classify(payload)
            if isinstance(classification, IgnoredEvent):
                logger.info(
                    "Ignoring non-agent webhook",
                    extra={"event_type": classification.event_type},
                )
                return self._respond(NON_AGENT_EVENT, "ignored")

            event = classification.event
            logger.info(
                "Processing AgentSessionEvent",
                extra={
                    "organization_id": event.organization_id,
                    "session_id": event.session_id,
                    "action": event.action,
                },
            )

            stage = IngestionStage.RESOLVING_CREDENTIAL
            credential = await self.resolver.resolve(event.organization_id)

            stage = IngestionStage.BUILDING_PROMPT
            prompt = build_prompt(event)

            stage = IngestionStage.SCHEDULING
            self.dispatcher.dispatch(
                DispatchTask(
                    session_id=event.session_id,
                    organization_id=event.organization_id,
                    prompt=prompt,
                    credential=credential,
                    agent_api_key=self.settings.openai_api_key,
                ),
                scheduler,
            )
            return self._respond(HANDLED, "handled")

        except VerificationError as e:
            logger.error(
                "Failed to parse webhook payload: %s",
                e.message,
                extra={"reason": e.reason.value, "stage": stage.value},
            )
            return self._respond(
                WebhookResponse(500, f"Error parsing webhook: {e.message}"),
                "rejected",
            )
        except CredentialNotFoundError as e:
            logger.error(
                "OAuth token not found for organization",
                extra={"organization_id": e.organization_id},
            )
            return self._respond(TOKEN_NOT_FOUND, "credential_not_found")
        except Exception as e:
            logger.exception(
                "Unhandled error processing webhook",
                extra={"stage": stage.value},
            )
            return self._respond(
                WebhookResponse(500, f"Error handling webhook: {e}"),
                "error",
            )

    def _respond(self, response: WebhookResponse, outcome: str) -> WebhookResponse:
        if self.metrics is not None:
            self.metrics.record_webhook(outcome)
        logger.debug(
            "Webhook response",
            extra={
                "stage": IngestionStage.RESPONDED.value,
                "status_code": response.status_code,
                "outcome": outcome,
            },
        )
        return response
