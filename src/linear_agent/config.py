"""Service configuration using pydantic-settings.

This module defines the AgentSettings class that reads configuration from
environment variables (or a .env file). The webhook signing secret and the
OpenAI API key default to empty strings: their absence is reported per
request by the webhook endpoint instead of preventing startup, so the
OAuth routes stay usable while the service is being set up.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentSettings(BaseSettings):
    """Agent service configuration from environment variables.

    Variable names match the field names (e.g. LINEAR_WEBHOOK_SECRET,
    OPENAI_API_KEY), case-insensitive.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Webhook Configuration
    # -------------------------------------------------------------------------
    # Signing secret shown on the Linear webhook settings page
    linear_webhook_secret: str = ""

    # Maximum clock skew accepted for webhookTimestamp; 0 disables the check
    webhook_timestamp_tolerance_seconds: int = 60

    # -------------------------------------------------------------------------
    # Agent Configuration
    # -------------------------------------------------------------------------
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # -------------------------------------------------------------------------
    # Linear OAuth Configuration
    # -------------------------------------------------------------------------
    linear_client_id: str = ""
    linear_client_secret: str = ""
    linear_redirect_uri: str = "http://localhost:8080/oauth/callback"
    linear_oauth_scopes: str = "read,write,app:assignable,app:mentionable"
    linear_authorize_url: str = "https://linear.app/oauth/authorize"
    linear_token_url: str = "https://api.linear.app/oauth/token"
    linear_api_url: str = "https://api.linear.app/graphql"

    # -------------------------------------------------------------------------
    # Token Storage
    # -------------------------------------------------------------------------
    # PostgreSQL connection string; empty keeps tokens in process memory
    database_url: str = ""

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = 8080

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("webhook_timestamp_tolerance_seconds")
    @classmethod
    def validate_tolerance(cls, v: int) -> int:
        """Validate that the timestamp tolerance is not negative."""
        if v < 0:
            raise ValueError("webhook_timestamp_tolerance_seconds cannot be negative")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate the database URL scheme when one is configured."""
        if v and not v.startswith(("postgresql://", "postgres://")):
            raise ValueError(
                "database_url must start with postgresql:// or postgres://"
            )
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @property
    def oauth_configured(self) -> bool:
        """Whether the OAuth client credentials are present."""
        return bool(self.linear_client_id and self.linear_client_secret)


def get_settings() -> AgentSettings:
    """Create and return an AgentSettings instance.

    Returns:
        AgentSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If a configured value is invalid.
    """
    return AgentSettings()
