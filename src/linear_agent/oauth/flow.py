"""Linear OAuth authorization-code flow for installing the agent.

An organization admin visits ``/oauth/authorize`` and is redirected to
Linear, which redirects back to ``/oauth/callback`` with a code. The code
is exchanged for an access token, the token is used to look up the
organization that granted it, and the token is stored under that
organization's id. From then on the credential resolver can find it for
webhooks from that organization.

``actor=app`` requests an application token, so the agent acts as itself
in Linear rather than as the installing user.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import SecretStr

from src.linear_agent.config import AgentSettings
from src.linear_agent.linear.client import LinearAPIError, LinearClient
from src.linear_agent.oauth.models import OAuthToken
from src.linear_agent.oauth.store import TokenStore

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    """Raised when the OAuth flow cannot be completed.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status to report to the browser.
    """

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class OAuthFlow:
    """Builds authorize URLs and completes code exchanges.

    Attributes:
        settings: Service settings with the OAuth client configuration.
        token_store: Where granted tokens are saved.
    """

    def __init__(
        self,
        settings: AgentSettings,
        token_store: TokenStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.token_store = token_store
        self._transport = transport

    def authorization_url(self, state: Optional[str] = None) -> str:
        """Return the Linear authorize URL to redirect the admin to.

        Raises:
            OAuthError: If the OAuth client id is not configured.
        """
        if not self.settings.linear_client_id:
            raise OAuthError("OAuth client not configured")

        params = {
            "client_id": self.settings.linear_client_id,
            "redirect_uri": self.settings.linear_redirect_uri,
            "response_type": "code",
            "scope": self.settings.linear_oauth_scopes,
            "actor": "app",
        }
        if state:
            params["state"] = state
        return f"{self.settings.linear_authorize_url}?{urlencode(params)}"

    async def complete(self, code: str) -> Dict[str, Any]:
        """Exchange an authorization code and store the resulting token.

        Args:
            code: The ``code`` query parameter from the callback.

        Returns:
            The organization (id, name) the token was stored for.

        Raises:
            OAuthError: If the client is not configured, the exchange fails,
                or the organization cannot be determined.
        """
        if not self.settings.oauth_configured:
            raise OAuthError("OAuth client not configured")
        if not code:
            raise OAuthError("Missing authorization code", status_code=400)

        grant = await self._exchange_code(code)
        access_token = grant.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise OAuthError("Token response did not include an access token")

        try:
            async with LinearClient(
                access_token=access_token,
                api_url=self.settings.linear_api_url,
                transport=self._transport,
            ) as client:
                organization = await client.get_viewer_organization()
        except LinearAPIError as e:
            logger.error(
                "Failed to look up organization for new token",
                extra={"error": e.message, "status_code": e.status_code},
            )
            raise OAuthError(f"Failed to look up organization: {e.message}") from e

        await self.token_store.save(
            OAuthToken(
                organization_id=organization["id"],
                access_token=SecretStr(access_token),
                token_type=str(grant.get("token_type") or "Bearer"),
                scope=_normalize_scope(grant.get("scope")),
                expires_at=_expiry(grant.get("expires_in")),
            )
        )

        logger.info(
            "OAuth authorization completed",
            extra={
                "organization_id": organization["id"],
                "organization_name": organization.get("name"),
            },
        )
        return organization

    async def _exchange_code(self, code: str) -> Dict[str, Any]:
        form = {
            "code": code,
            "redirect_uri": self.settings.linear_redirect_uri,
            "client_id": self.settings.linear_client_id,
            "client_secret": self.settings.linear_client_secret,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(self.settings.linear_token_url, data=form)
        except httpx.RequestError as e:
            raise OAuthError(f"Token exchange request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                "OAuth token exchange failed",
                extra={
                    "status_code": response.status_code,
                    "response_body": response.text[:500],
                },
            )
            raise OAuthError(f"Token exchange failed: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise OAuthError("Token exchange returned a non-JSON response") from e


def _normalize_scope(scope: Any) -> str:
    if isinstance(scope, list):
        return ",".join(str(s) for s in scope)
    return str(scope or "")


def _expiry(expires_in: Any) -> Optional[datetime]:
    if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
        return None
    return datetime.now(timezone.utc) + timedelta(seconds=expires_in)
