"""User prompt derivation for agent session events."""

from src.linear_agent.webhook.models import AgentSessionEvent


def build_prompt(event: AgentSessionEvent) -> str:
    """Build the agent's user prompt from the session's issue and comment.

    The issue title gives context and the comment is the task; when only one
    of them is present it becomes the task. Returns an empty string when the
    session carries neither.
    """
    issue_title = event.issue_title
    comment_body = event.comment_body

    if issue_title and comment_body:
        return f"Issue: {issue_title}\n\nTask: {comment_body}"
    if issue_title:
        return f"Task: {issue_title}"
    if comment_body:
        return f"Task: {comment_body}"
    return ""
