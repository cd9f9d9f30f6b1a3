"""OAuth token and credential models."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, SecretStr


class OAuthToken(BaseModel):
    """An access token granted to the agent by one Linear organization.

    Attributes:
        organization_id: The Linear organization that granted the token.
        access_token: The bearer token for the Linear API.
        token_type: Token type reported by Linear (normally "Bearer").
        scope: Space- or comma-separated scopes granted.
        expires_at: When the token expires, if Linear reported a lifetime.
        created_at: When the token was first stored.
        updated_at: When the token was last replaced.
    """

    organization_id: str = Field(..., min_length=1)
    access_token: SecretStr
    token_type: str = "Bearer"
    scope: str = ""
    expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        current = now or datetime.now(timezone.utc)
        return self.expires_at <= current


class Credential(BaseModel):
    """A resolved per-organization credential, held for one dispatch."""

    organization_id: str = Field(..., min_length=1)
    access_token: SecretStr

    def bearer_token(self) -> str:
        return self.access_token.get_secret_value()
