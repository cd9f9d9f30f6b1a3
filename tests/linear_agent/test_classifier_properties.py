"""Property-based tests for webhook event classification.

Properties:
- Only AgentSessionEvent payloads are accepted; every other tag, known or
  not, is ignored.
- Classification is a pure function of the payload.
"""

import pytest
from hypothesis import given, settings, strategies as st

from src.linear_agent.webhook import (
    AcceptedEvent,
    IgnoredEvent,
    VerificationError,
    VerificationReason,
    VerifiedPayload,
    WebhookType,
    classify,
)


# =============================================================================
# Hypothesis Strategies
# =============================================================================


identifiers = st.text(
    alphabet=st.sampled_from("abcdef0123456789-"), min_size=1, max_size=36
)
optional_text = st.one_of(st.none(), st.text(max_size=200))


@st.composite
def agent_session_body(draw: st.DrawFn) -> dict:
    """Generate a valid AgentSessionEvent payload body."""
    session: dict = {"id": draw(identifiers)}

    title = draw(optional_text)
    if title is not None:
        session["issue"] = {"id": draw(identifiers), "title": title}

    comment = draw(optional_text)
    if comment is not None:
        session["comment"] = {"id": draw(identifiers), "body": comment}

    return {
        "type": "AgentSessionEvent",
        "action": draw(st.sampled_from(["created", "prompted"])),
        "organizationId": draw(identifiers),
        "agentSession": session,
    }


non_agent_tags = st.one_of(
    st.sampled_from(
        [t.value for t in WebhookType if t is not WebhookType.AGENT_SESSION_EVENT]
    ),
    st.text(min_size=1, max_size=40).filter(lambda t: t != "AgentSessionEvent"),
)


def _payload(body: dict) -> VerifiedPayload:
    return VerifiedPayload(
        event_type=body["type"],
        action=body.get("action"),
        organization_id=body.get("organizationId"),
        body=body,
    )


# =============================================================================
# Property Tests
# =============================================================================


class TestAgentSessionAccepted:
    """AgentSessionEvent payloads are accepted with their identifiers."""

    @given(body=agent_session_body())
    @settings(max_examples=100)
    def test_agent_session_event_accepted(self, body: dict) -> None:
        result = classify(_payload(body))

        assert isinstance(result, AcceptedEvent)
        assert result.event.organization_id == body["organizationId"]
        assert result.event.session_id == body["agentSession"]["id"]

    @given(body=agent_session_body())
    @settings(max_examples=100)
    def test_optional_context_preserved(self, body: dict) -> None:
        result = classify(_payload(body))

        assert isinstance(result, AcceptedEvent)
        issue = body["agentSession"].get("issue")
        comment = body["agentSession"].get("comment")
        assert result.event.issue_title == (issue["title"] if issue else None)
        assert result.event.comment_body == (comment["body"] if comment else None)

    @given(body=agent_session_body(), missing=st.sampled_from(["organizationId", "agentSession"]))
    @settings(max_examples=50)
    def test_missing_identifier_is_malformed(self, body: dict, missing: str) -> None:
        del body[missing]

        with pytest.raises(VerificationError) as exc_info:
            classify(_payload(body))

        assert exc_info.value.reason is VerificationReason.MALFORMED_PAYLOAD


class TestOtherTypesIgnored:
    """Every other type tag is ignored, including tags added upstream later."""

    @given(tag=non_agent_tags, data=st.dictionaries(st.text(max_size=10), st.text(max_size=10)))
    @settings(max_examples=100)
    def test_non_agent_types_ignored(self, tag: str, data: dict) -> None:
        body = {**data, "type": tag}

        result = classify(_payload(body))

        assert result == IgnoredEvent(event_type=tag)


class TestClassificationIsPure:
    """Classifying the same payload twice yields equal results."""

    @given(body=st.one_of(agent_session_body(), non_agent_tags.map(lambda t: {"type": t})))
    @settings(max_examples=100)
    def test_classification_idempotent(self, body: dict) -> None:
        payload = _payload(body)

        assert classify(payload) == classify(payload)
