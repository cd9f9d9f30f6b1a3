"""FastAPI application entry point for the Linear agent service.

Routes:
- GET  /                 Static greeting
- GET  /health           Liveness probe
- GET  /metrics          Prometheus metrics
- GET  /oauth/authorize  Redirect to Linear to install the agent
- GET  /oauth/callback   Complete the OAuth grant and store the token
- POST /webhook          Linear webhook ingestion
- anything else          200 "OK"
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import APIRouter, BackgroundTasks, FastAPI, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from .agent.client import AgentClient
from .config import AgentSettings, get_settings
from .dispatch.dispatcher import AgentFactory, BackgroundTaskScheduler, Dispatcher
from .endpoint import WebhookEndpoint
from .events.emitter import CompositeEventEmitter, LoggingEventEmitter
from .events.metrics import AgentMetrics, MetricsEventEmitter, generate_metrics_output, get_metrics
from .oauth.flow import OAuthError, OAuthFlow
from .oauth.models import Credential
from .oauth.resolver import CredentialResolver
from .oauth.store import InMemoryTokenStore, PostgresTokenStore, TokenStore
from .webhook.verifier import SIGNATURE_HEADER

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

GREETING = "Weather bot says hello! 🌤️"


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: AgentSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Agent service configuration:")
    logger.info(f"  Linear Webhook Secret: {_redact_secret(settings.linear_webhook_secret)}")
    logger.info(f"  Webhook Timestamp Tolerance: {settings.webhook_timestamp_tolerance_seconds}s")
    logger.info(f"  OpenAI API Key: {_redact_secret(settings.openai_api_key)}")
    logger.info(f"  OpenAI Model: {settings.openai_model}")
    logger.info(f"  Linear Client ID: {settings.linear_client_id or '(not set)'}")
    logger.info(f"  Linear Client Secret: {_redact_secret(settings.linear_client_secret)}")
    logger.info(f"  Linear Redirect URI: {settings.linear_redirect_uri}")
    logger.info(f"  Linear API URL: {settings.linear_api_url}")
    logger.info(
        "  Token Store: %s",
        "postgresql" if settings.database_url else "in-memory",
    )
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def _default_agent_factory(settings: AgentSettings) -> AgentFactory:
    def build(credential: Credential, api_key: str) -> AgentClient:
        return AgentClient(
            linear_access_token=credential.bearer_token(),
            openai_api_key=api_key,
            model_name=settings.openai_model,
            linear_api_url=settings.linear_api_url,
        )

    return build


router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root():
    return GREETING


@router.get("/health")
async def health():
    """Liveness probe endpoint."""
    return {"status": "healthy"}


@router.get("/metrics")
async def metrics(request: Request):
    """Prometheus metrics endpoint."""
    agent_metrics: AgentMetrics = request.app.state.metrics
    return Response(
        content=generate_metrics_output(agent_metrics.registry),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


@router.get("/oauth/authorize")
async def oauth_authorize(request: Request):
    """Redirect the installing admin to Linear's consent screen."""
    flow: OAuthFlow = request.app.state.oauth_flow
    try:
        url = flow.authorization_url()
    except OAuthError as e:
        logger.error("OAuth authorize failed: %s", e.message)
        return PlainTextResponse(e.message, status_code=e.status_code)
    return RedirectResponse(url, status_code=302)


@router.get("/oauth/callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    error: Optional[str] = None,
):
    """Complete the OAuth grant started by /oauth/authorize."""
    if error:
        logger.warning("OAuth authorization denied: %s", error)
        return PlainTextResponse(f"Authorization failed: {error}", status_code=400)

    flow: OAuthFlow = request.app.state.oauth_flow
    try:
        organization = await flow.complete(code or "")
    except OAuthError as e:
        logger.error("OAuth callback failed: %s", e.message)
        return PlainTextResponse(e.message, status_code=e.status_code)

    name = organization.get("name") or organization["id"]
    return PlainTextResponse(f"Authorization successful for {name}")


@router.post("/webhook")
async def webhook(request: Request, background_tasks: BackgroundTasks):
    """Linear webhook receiver.

    Responds as soon as the agent dispatch is scheduled; the agent runs as
    a background task after the response has been sent.
    """
    endpoint: WebhookEndpoint = request.app.state.webhook_endpoint
    result = await endpoint.handle(
        request.body,
        request.headers.get(SIGNATURE_HEADER),
        BackgroundTaskScheduler(background_tasks),
    )
    return PlainTextResponse(result.message, status_code=result.status_code)


@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False,
)
async def fallback(path: str):
    return PlainTextResponse("OK")


def create_app(
    settings: Optional[AgentSettings] = None,
    token_store: Optional[TokenStore] = None,
    agent_factory: Optional[AgentFactory] = None,
    agent_metrics: Optional[AgentMetrics] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Every argument is optional; omitted collaborators are created from the
    environment at startup. Tests inject fakes through these arguments.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Linear agent service starting up...")

        cfg = settings or get_settings()
        _log_configuration(cfg)

        store = token_store
        owned_store: Optional[PostgresTokenStore] = None
        if store is None:
            if cfg.database_url:
                owned_store = PostgresTokenStore(cfg.database_url)
                await owned_store.connect()
                store = owned_store
            else:
                store = InMemoryTokenStore()

        metrics_instance = agent_metrics or get_metrics()
        emitter = CompositeEventEmitter(
            [LoggingEventEmitter(), MetricsEventEmitter(metrics=metrics_instance)]
        )
        dispatcher = Dispatcher(
            agent_factory=agent_factory or _default_agent_factory(cfg),
            event_emitter=emitter,
        )

        app.state.settings = cfg
        app.state.metrics = metrics_instance
        app.state.oauth_flow = OAuthFlow(cfg, store, transport=transport)
        app.state.webhook_endpoint = WebhookEndpoint(
            settings=cfg,
            resolver=CredentialResolver(store),
            dispatcher=dispatcher,
            metrics=metrics_instance,
        )

        logger.info("Linear agent service started successfully")

        yield

        logger.info("Linear agent service shutting down...")
        await emitter.close()
        if owned_store is not None:
            await owned_store.disconnect()
        logger.info("Linear agent service shutdown complete")

    application = FastAPI(
        title="Linear Agent",
        description="Linear agent webhook receiver and OAuth installer",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.include_router(router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.linear_agent.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
        reload=True,
    )
