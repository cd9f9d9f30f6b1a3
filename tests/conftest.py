"""Pytest configuration for all tests."""

import os
import sys

import pytest

# Tests import the service as ``src.linear_agent``
root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from src.linear_agent.config import AgentSettings  # noqa: E402


@pytest.fixture
def agent_settings():
    """Settings with both required secrets and no .env lookup."""
    return AgentSettings(
        _env_file=None,
        linear_webhook_secret="test-webhook-secret",
        openai_api_key="sk-test",
        linear_client_id="client-id",
        linear_client_secret="client-secret",
        linear_redirect_uri="http://testserver/oauth/callback",
        webhook_timestamp_tolerance_seconds=60,
    )
