"""Unit tests for the Linear OAuth installation flow."""

import asyncio
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from src.linear_agent.oauth import InMemoryTokenStore, OAuthError, OAuthFlow


def run_async(coro):
    return asyncio.run(coro)


VIEWER_RESPONSE = {
    "data": {
        "viewer": {
            "id": "app-user-1",
            "organization": {"id": "org-1", "name": "Acme", "urlKey": "acme"},
        }
    }
}


def linear_handler(token_response=None, token_status=200, viewer_response=None):
    """Build a MockTransport handler serving the token and GraphQL endpoints."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/oauth/token":
            return httpx.Response(
                token_status,
                json=token_response if token_response is not None else {
                    "access_token": "lin-new-token",
                    "token_type": "Bearer",
                    "expires_in": 3600,
                    "scope": ["read", "write"],
                },
            )
        return httpx.Response(200, json=viewer_response or VIEWER_RESPONSE)

    handler.requests = requests
    return handler


def _flow(agent_settings, handler=None, store=None):
    return OAuthFlow(
        agent_settings,
        store or InMemoryTokenStore(),
        transport=httpx.MockTransport(handler or linear_handler()),
    )


class TestAuthorizationUrl:

    def test_url_requests_app_actor(self, agent_settings):
        url = _flow(agent_settings).authorization_url(state="xyz")

        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://linear.app/oauth/authorize"
        assert params["client_id"] == ["client-id"]
        assert params["redirect_uri"] == ["http://testserver/oauth/callback"]
        assert params["response_type"] == ["code"]
        assert params["actor"] == ["app"]
        assert params["state"] == ["xyz"]

    def test_unconfigured_client_raises(self, agent_settings):
        settings = agent_settings.model_copy(update={"linear_client_id": ""})

        with pytest.raises(OAuthError):
            _flow(settings).authorization_url()


class TestComplete:

    def test_exchanges_code_and_stores_token(self, agent_settings):
        handler = linear_handler()
        store = InMemoryTokenStore()

        organization = run_async(_flow(agent_settings, handler, store).complete("auth-code"))

        assert organization["id"] == "org-1"
        token = run_async(store.get("org-1"))
        assert token.access_token.get_secret_value() == "lin-new-token"
        assert token.scope == "read,write"
        assert token.expires_at is not None

        token_request = handler.requests[0]
        form = parse_qs(token_request.content.decode())
        assert form["code"] == ["auth-code"]
        assert form["grant_type"] == ["authorization_code"]
        assert form["client_secret"] == ["client-secret"]
        assert handler.requests[1].headers["Authorization"] == "Bearer lin-new-token"

    def test_missing_code_is_client_error(self, agent_settings):
        with pytest.raises(OAuthError) as exc_info:
            run_async(_flow(agent_settings).complete(""))

        assert exc_info.value.status_code == 400

    def test_unconfigured_client_raises(self, agent_settings):
        settings = agent_settings.model_copy(update={"linear_client_secret": ""})

        with pytest.raises(OAuthError):
            run_async(_flow(settings).complete("auth-code"))

    def test_rejected_exchange_stores_nothing(self, agent_settings):
        store = InMemoryTokenStore()
        handler = linear_handler(token_response={"error": "invalid_grant"}, token_status=400)

        with pytest.raises(OAuthError):
            run_async(_flow(agent_settings, handler, store).complete("bad-code"))

        assert run_async(store.get("org-1")) is None

    def test_response_without_access_token_raises(self, agent_settings):
        handler = linear_handler(token_response={"token_type": "Bearer"})

        with pytest.raises(OAuthError):
            run_async(_flow(agent_settings, handler).complete("auth-code"))

    def test_organization_lookup_failure_raises(self, agent_settings):
        store = InMemoryTokenStore()
        handler = linear_handler(viewer_response={"errors": [{"message": "forbidden"}]})

        with pytest.raises(OAuthError) as exc_info:
            run_async(_flow(agent_settings, handler, store).complete("auth-code"))

        assert "forbidden" in exc_info.value.message
        assert run_async(store.get("org-1")) is None

    def test_string_scope_kept(self, agent_settings):
        store = InMemoryTokenStore()
        handler = linear_handler(
            token_response={"access_token": "lin-new-token", "scope": "read write"}
        )

        run_async(_flow(agent_settings, handler, store).complete("auth-code"))

        token = run_async(store.get("org-1"))
        assert token.scope == "read write"
        assert token.expires_at is None
