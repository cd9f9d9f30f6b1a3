"""Per-organization credential resolution for webhook dispatch."""

import logging

from src.linear_agent.oauth.models import Credential
from src.linear_agent.oauth.store import TokenStore

logger = logging.getLogger(__name__)


class CredentialNotFoundError(Exception):
    """Raised when no usable token is stored for an organization.

    The organization never completed the OAuth flow, or its token has
    expired or been removed; it must authorize the application again.

    Attributes:
        organization_id: The organization without a credential.
    """

    def __init__(self, organization_id: str):
        self.organization_id = organization_id
        super().__init__(f"Linear OAuth token not found for organization: {organization_id}")


class CredentialResolver:
    """Resolves the Linear access token for an organization.

    Performs exactly one token store lookup per call. Credentials are not
    cached: a token replaced or deleted through the OAuth flow takes effect
    on the next webhook.
    """

    def __init__(self, token_store: TokenStore):
        self.token_store = token_store

    async def resolve(self, organization_id: str) -> Credential:
        """Return the credential for an organization.

        Raises:
            CredentialNotFoundError: If no token is stored or it has expired.
        """
        token = await self.token_store.get(organization_id)

        if token is None:
            logger.error(
                "OAuth token not found for organization",
                extra={"organization_id": organization_id},
            )
            raise CredentialNotFoundError(organization_id)

        if token.is_expired():
            logger.error(
                "OAuth token expired for organization",
                extra={
                    "organization_id": organization_id,
                    "expires_at": token.expires_at.isoformat() if token.expires_at else None,
                },
            )
            raise CredentialNotFoundError(organization_id)

        return Credential(
            organization_id=organization_id,
            access_token=token.access_token,
        )
