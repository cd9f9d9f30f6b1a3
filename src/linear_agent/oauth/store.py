"""Token storage for Linear OAuth access tokens.

Tokens are keyed by Linear organization id. Two implementations of the
TokenStore protocol are provided:

- InMemoryTokenStore: process-local storage for development and tests
- PostgresTokenStore: asyncpg-backed storage for deployments with more
  than one process or restarts that must keep granted tokens

The PostgreSQL table is created on connect():

    CREATE TABLE IF NOT EXISTS oauth_tokens (
        organization_id TEXT PRIMARY KEY,
        access_token    TEXT NOT NULL,
        token_type      TEXT NOT NULL,
        scope           TEXT NOT NULL,
        expires_at      TIMESTAMPTZ,
        created_at      TIMESTAMPTZ NOT NULL,
        updated_at      TIMESTAMPTZ NOT NULL
    )
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import asyncpg
from pydantic import SecretStr

from src.linear_agent.oauth.models import OAuthToken

logger = logging.getLogger(__name__)


class TokenStoreError(Exception):
    """Raised when a token store operation fails.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


@runtime_checkable
class TokenStore(Protocol):
    """Persistence interface for OAuth tokens keyed by organization id."""

    async def get(self, organization_id: str) -> Optional[OAuthToken]:
        ...

    async def save(self, token: OAuthToken) -> None:
        ...

    async def delete(self, organization_id: str) -> bool:
        ...


class InMemoryTokenStore:
    """Process-local token store.

    Tokens are lost when the process exits. Saving a token for an
    organization that already has one replaces it.
    """

    def __init__(self) -> None:
        self._tokens: Dict[str, OAuthToken] = {}

    async def get(self, organization_id: str) -> Optional[OAuthToken]:
        return self._tokens.get(organization_id)

    async def save(self, token: OAuthToken) -> None:
        existing = self._tokens.get(token.organization_id)
        if existing is not None:
            token = token.model_copy(
                update={
                    "created_at": existing.created_at,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
        self._tokens[token.organization_id] = token

    async def delete(self, organization_id: str) -> bool:
        return self._tokens.pop(organization_id, None) is not None


_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS oauth_tokens (
    organization_id TEXT PRIMARY KEY,
    access_token    TEXT NOT NULL,
    token_type      TEXT NOT NULL,
    scope           TEXT NOT NULL,
    expires_at      TIMESTAMPTZ,
    created_at      TIMESTAMPTZ NOT NULL,
    updated_at      TIMESTAMPTZ NOT NULL
)
"""


class PostgresTokenStore:
    """PostgreSQL implementation of the TokenStore protocol.

    Attributes:
        connection_string: PostgreSQL connection URL.
        min_pool_size: Minimum connections in pool.
        max_pool_size: Maximum connections in pool.

    Example:
        >>> async with PostgresTokenStore("postgresql://...") as store:
        ...     token = await store.get("org-uuid")
    """

    def __init__(
        self,
        connection_string: str,
        min_pool_size: int = 1,
        max_pool_size: int = 5,
    ):
        self.connection_string = connection_string
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool, raising if not connected."""
        if self._pool is None:
            raise TokenStoreError(
                "Database pool not initialized. Call connect() first."
            )
        return self._pool

    async def connect(self) -> None:
        """Create the connection pool and the oauth_tokens table.

        Raises:
            TokenStoreError: If the connection or table creation fails.
        """
        if self._pool is not None:
            logger.warning("Connection pool already initialized")
            return

        try:
            logger.info(
                "Connecting to PostgreSQL",
                extra={
                    "min_pool_size": self.min_pool_size,
                    "max_pool_size": self.max_pool_size,
                },
            )
            self._pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
            )
            async with self._pool.acquire() as conn:
                await conn.execute(_CREATE_TABLE)
            logger.info("PostgreSQL token store ready")
        except Exception as e:
            logger.error(
                "Failed to connect to PostgreSQL",
                extra={"error": str(e)},
            )
            raise TokenStoreError(
                f"Failed to connect to PostgreSQL: {e}",
                original_error=e,
            ) from e

    async def disconnect(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    async def __aenter__(self) -> "PostgresTokenStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    async def get(self, organization_id: str) -> Optional[OAuthToken]:
        """Fetch the token stored for an organization.

        Raises:
            TokenStoreError: If the query fails.
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    SELECT organization_id, access_token, token_type, scope,
                           expires_at, created_at, updated_at
                    FROM oauth_tokens
                    WHERE organization_id = $1
                    """,
                    organization_id,
                )
        except asyncpg.PostgresError as e:
            raise TokenStoreError(
                f"Failed to load token for {organization_id}: {e}",
                original_error=e,
            ) from e

        if row is None:
            return None
        return _row_to_token(row)

    async def save(self, token: OAuthToken) -> None:
        """Insert or replace the token for an organization.

        Raises:
            TokenStoreError: If the upsert fails.
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO oauth_tokens (
                        organization_id,
                        access_token,
                        token_type,
                        scope,
                        expires_at,
                        created_at,
                        updated_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                    ON CONFLICT (organization_id) DO UPDATE SET
                        access_token = EXCLUDED.access_token,
                        token_type = EXCLUDED.token_type,
                        scope = EXCLUDED.scope,
                        expires_at = EXCLUDED.expires_at,
                        updated_at = EXCLUDED.updated_at
                    """,
                    token.organization_id,
                    token.access_token.get_secret_value(),
                    token.token_type,
                    token.scope,
                    token.expires_at,
                    token.created_at,
                    datetime.now(timezone.utc),
                )
        except asyncpg.PostgresError as e:
            raise TokenStoreError(
                f"Failed to save token for {token.organization_id}: {e}",
                original_error=e,
            ) from e

        logger.info(
            "Stored OAuth token",
            extra={"organization_id": token.organization_id},
        )

    async def delete(self, organization_id: str) -> bool:
        """Delete the token for an organization.

        Returns:
            True if a token was deleted.
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM oauth_tokens WHERE organization_id = $1",
                    organization_id,
                )
        except asyncpg.PostgresError as e:
            raise TokenStoreError(
                f"Failed to delete token for {organization_id}: {e}",
                original_error=e,
            ) from e

        # asyncpg returns the command tag, e.g. "DELETE 1"
        return result.split()[-1] != "0"


def _row_to_token(row: Any) -> OAuthToken:
    return OAuthToken(
        organization_id=row["organization_id"],
        access_token=SecretStr(row["access_token"]),
        token_type=row["token_type"],
        scope=row["scope"],
        expires_at=row["expires_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
