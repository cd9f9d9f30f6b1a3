"""Linear OAuth: token storage, credential resolution, and the grant flow.

- OAuthFlow: authorize redirect and code exchange
- TokenStore: InMemoryTokenStore and PostgresTokenStore
- CredentialResolver: per-organization token lookup for webhook dispatch
"""

from src.linear_agent.oauth.flow import OAuthError, OAuthFlow
from src.linear_agent.oauth.models import Credential, OAuthToken
from src.linear_agent.oauth.resolver import CredentialNotFoundError, CredentialResolver
from src.linear_agent.oauth.store import (
    InMemoryTokenStore,
    PostgresTokenStore,
    TokenStore,
    TokenStoreError,
)

__all__ = [
    "Credential",
    "CredentialNotFoundError",
    "CredentialResolver",
    "InMemoryTokenStore",
    "OAuthError",
    "OAuthFlow",
    "OAuthToken",
    "PostgresTokenStore",
    "TokenStore",
    "TokenStoreError",
]
