"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from src.linear_agent.config import AgentSettings

ENV_VARS = (
    "LINEAR_WEBHOOK_SECRET",
    "WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "LINEAR_CLIENT_ID",
    "LINEAR_CLIENT_SECRET",
    "DATABASE_URL",
    "PORT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAgentSettings:
    """Tests for AgentSettings."""

    def test_defaults(self, clean_env):
        """Secrets default to empty so startup never fails on them."""
        settings = AgentSettings(_env_file=None)

        assert settings.linear_webhook_secret == ""
        assert settings.openai_api_key == ""
        assert settings.webhook_timestamp_tolerance_seconds == 60
        assert settings.linear_api_url == "https://api.linear.app/graphql"
        assert settings.database_url == ""
        assert settings.port == 8080
        assert settings.oauth_configured is False

    def test_loads_platform_variable_names(self, clean_env):
        clean_env.setenv("LINEAR_WEBHOOK_SECRET", "whsec")
        clean_env.setenv("OPENAI_API_KEY", "sk-live")
        clean_env.setenv("WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS", "0")

        settings = AgentSettings(_env_file=None)

        assert settings.linear_webhook_secret == "whsec"
        assert settings.openai_api_key == "sk-live"
        assert settings.webhook_timestamp_tolerance_seconds == 0

    def test_oauth_configured_requires_id_and_secret(self, clean_env):
        assert AgentSettings(_env_file=None, linear_client_id="id").oauth_configured is False
        assert AgentSettings(
            _env_file=None, linear_client_id="id", linear_client_secret="secret"
        ).oauth_configured is True

    def test_negative_tolerance_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            AgentSettings(_env_file=None, webhook_timestamp_tolerance_seconds=-1)

    @pytest.mark.parametrize(
        "url",
        ["postgresql://u:p@localhost/db", "postgres://u:p@localhost/db"],
    )
    def test_postgres_urls_accepted(self, clean_env, url):
        assert AgentSettings(_env_file=None, database_url=url).database_url == url

    def test_non_postgres_url_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            AgentSettings(_env_file=None, database_url="mysql://localhost/db")

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_out_of_range_rejected(self, clean_env, port):
        with pytest.raises(ValidationError):
            AgentSettings(_env_file=None, port=port)
