"""Linear GraphQL API client.

This module provides an async wrapper around the Linear GraphQL API for:
- Looking up the organization that granted an OAuth token
- Posting agent activities (thoughts, responses, errors) to agent sessions

Linear reports GraphQL failures with HTTP 200 and an ``errors`` array, so
both the status code and the body are checked.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.linear.app/graphql"

VIEWER_ORGANIZATION_QUERY = """
query ViewerOrganization {
    viewer {
        id
        organization {
            id
            name
            urlKey
        }
    }
}
"""

AGENT_ACTIVITY_CREATE_MUTATION = """
mutation AgentActivityCreate($input: AgentActivityCreateInput!) {
    agentActivityCreate(input: $input) {
        success
        agentActivity {
            id
        }
    }
}
"""


class LinearAPIError(Exception):
    """Raised when a Linear API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from the Linear API.
        errors: GraphQL error objects, if the body carried any.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.errors = errors or []
        super().__init__(message)


class LinearClient:
    """Async Linear GraphQL client authenticated with an OAuth access token.

    Example:
        >>> async with LinearClient(access_token="lin_oauth_xxx") as client:
        ...     org = await client.get_viewer_organization()
    """

    def __init__(
        self,
        access_token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the Linear client.

        Args:
            access_token: OAuth access token for the organization.
            api_url: GraphQL endpoint URL.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.access_token = access_token
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": "application/json",
                    "User-Agent": "linear-agent/0.1",
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LinearClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Execute a GraphQL operation and return its ``data`` object.

        Raises:
            LinearAPIError: On transport errors, HTTP errors, or GraphQL errors.
        """
        try:
            response = await self.client.post(
                self.api_url,
                json={"query": query, "variables": variables or {}},
            )
        except httpx.RequestError as e:
            raise LinearAPIError(f"Linear API request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                "Linear API error",
                extra={
                    "status_code": response.status_code,
                    "response_body": response.text[:500],
                },
            )
            raise LinearAPIError(
                message=f"Linear API error: {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LinearAPIError(
                "Linear API returned a non-JSON response",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        errors = body.get("errors")
        if errors:
            first = errors[0].get("message", "unknown error") if isinstance(errors[0], dict) else str(errors[0])
            raise LinearAPIError(
                message=f"Linear GraphQL error: {first}",
                status_code=response.status_code,
                response_body=response.text,
                errors=errors,
            )

        return body.get("data") or {}

    async def get_viewer_organization(self) -> Dict[str, Any]:
        """Return the organization (id, name, urlKey) that granted the token.

        Raises:
            LinearAPIError: If the query fails or returns no organization.
        """
        data = await self.execute(VIEWER_ORGANIZATION_QUERY)
        organization = (data.get("viewer") or {}).get("organization")
        if not organization or not organization.get("id"):
            raise LinearAPIError("Linear API returned no organization for viewer")
        return organization

    async def create_agent_activity(
        self,
        agent_session_id: str,
        content: Dict[str, Any],
    ) -> Optional[str]:
        """Post an activity to an agent session.

        Args:
            agent_session_id: The agent session to post to.
            content: Activity content, e.g. {"type": "response", "body": "..."}.

        Returns:
            The id of the created activity, if Linear returned one.

        Raises:
            LinearAPIError: If the mutation fails or reports success=false.
        """
        data = await self.execute(
            AGENT_ACTIVITY_CREATE_MUTATION,
            {"input": {"agentSessionId": agent_session_id, "content": content}},
        )
        result = data.get("agentActivityCreate") or {}
        if not result.get("success"):
            raise LinearAPIError(
                f"agentActivityCreate failed for session {agent_session_id}"
            )
        activity = result.get("agentActivity") or {}
        return activity.get("id")
