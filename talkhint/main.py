"""
FastAPI server for TalkHint.

This module wires the application together and exposes the thin proxy server:

- ``/api/openai/chat/completions`` forwards completion requests upstream with
  the server-held credential, so the browser never needs the API key;
- ``/api/chat``, ``/health``, ``/api/openai/health`` and ``/cors-test`` are
  connectivity and diagnostics endpoints;
- ``/postmessage-test`` serves a page for testing cross-frame messaging;
- ``/ws/frames`` is the WebSocket frame bridge.

Services are built once by ``build_services`` and passed by reference to
whatever needs them; tests build fresh instances through ``create_app``.
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import dotenv
import httpx
from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talkhint.config.constants import ALLOWED_ORIGINS, TRUSTED_DOMAINS
from talkhint.config.logging_config import configure_logging
from talkhint.config.settings import (
    AppSettings,
    ConfigManager,
    InMemorySettingsStore,
    JsonFileSettingsStore,
    SettingsStore,
)
from talkhint.frame_bridge import FrameBridgeManager
from talkhint.handlers.api_handlers import handle_chat, handle_openai_proxy
from talkhint.handlers.page_handlers import handle_postmessage_test_page
from talkhint.llm.facade import LLMFacade
from talkhint.messaging.origin_policy import OriginPolicy
from talkhint.models.message_schemas import HealthResponse, utc_timestamp
from talkhint.proxy.client import UpstreamRequestClient
from talkhint.proxy.endpoints import ProxyEndpointRegistry

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# Configure logging
logger = configure_logging()

APP_NAME = "TalkHint"
APP_VERSION = "1.0.0"


class Services:
    """Process-wide components, constructed once at application wiring time."""

    def __init__(
        self,
        settings: AppSettings,
        config_manager: ConfigManager,
        registry: ProxyEndpointRegistry,
        upstream: UpstreamRequestClient,
        facade: LLMFacade,
        policy: OriginPolicy,
        bridge: FrameBridgeManager,
        proxy_http: httpx.AsyncClient,
    ):
        self.settings = settings
        self.config_manager = config_manager
        self.registry = registry
        self.upstream = upstream
        self.facade = facade
        self.policy = policy
        self.bridge = bridge
        self.proxy_http = proxy_http

    async def aclose(self) -> None:
        await self.upstream.aclose()
        await self.proxy_http.aclose()


def settings_store_from_env() -> SettingsStore:
    path = os.getenv("TALKHINT_SETTINGS_FILE")
    if path:
        return JsonFileSettingsStore(Path(path))
    return InMemorySettingsStore()


def build_services(
    settings: AppSettings,
    store: Optional[SettingsStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    proxy_http: Optional[httpx.AsyncClient] = None,
) -> Services:
    """
    Construct and connect every long-lived component.

    Args:
        settings: Process settings
        store: Persisted user settings; in-memory when omitted
        http_client: Client used for upstream completion calls
        proxy_http: Client used by the server's own OpenAI proxy route

    Returns:
        Services: The wired components
    """
    config_manager = ConfigManager(settings, store or InMemorySettingsStore())
    registry = ProxyEndpointRegistry.from_config(config_manager)
    upstream = UpstreamRequestClient(
        config_manager,
        registry,
        http_client=http_client,
        page_origin=settings.page_origin,
        model=settings.model,
    )
    facade = LLMFacade(upstream, config_manager)
    policy = OriginPolicy(settings)
    bridge = FrameBridgeManager(settings, policy=policy)
    return Services(
        settings=settings,
        config_manager=config_manager,
        registry=registry,
        upstream=upstream,
        facade=facade,
        policy=policy,
        bridge=bridge,
        proxy_http=proxy_http or httpx.AsyncClient(),
    )


def cors_origin_regex(settings: AppSettings) -> str:
    """Regex for trusted domain families, plus localhost outside production."""
    families = "|".join(d.replace(".", r"\.") for d in TRUSTED_DOMAINS)
    pattern = rf"https?://([a-z0-9-]+\.)*({families})(:\d+)?"
    if not settings.is_production:
        pattern += r"|https?://localhost(:\d+)?"
    return pattern


def create_app(settings: Optional[AppSettings] = None,
               services: Optional[Services] = None) -> FastAPI:
    """Create the FastAPI application around a set of services."""
    settings = settings or (services.settings if services else AppSettings.from_env())
    services = services or build_services(settings, store=settings_store_from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{APP_NAME} starting in {settings.environment.value} mode")
        yield
        await services.aclose()
        logger.info(f"{APP_NAME} stopped")

    app = FastAPI(
        title=APP_NAME,
        description="Conversation hints with a credential-hiding OpenAI proxy and a cross-frame messaging bridge",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(ALLOWED_ORIGINS),
        allow_origin_regex=cors_origin_regex(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "Accept", "Origin"],
    )

    @app.get("/")
    async def root():
        """Basic information about the API."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "endpoints": {
                "/health": "Health check endpoint",
                "/cors-test": "CORS diagnostics",
                "/api/chat": "Simple chat echo",
                "/api/openai/chat/completions": "OpenAI chat completions proxy",
                "/api/openai/health": "OpenAI proxy health",
                "/postmessage-test": "postMessage test page",
                "/ws/frames": "WebSocket frame bridge",
            },
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check with a diagnostic echo of the request headers."""
        return HealthResponse(
            environment=settings.environment.value,
            openai_api_key_configured=bool(settings.openai_api_key),
            active_frames=services.bridge.active_count,
            headers=dict(request.headers),
        )

    @app.get("/cors-test")
    async def cors_test(request: Request):
        origin = request.headers.get("origin")
        return {
            "success": True,
            "message": "CORS Test Successful",
            "yourOrigin": origin or "Unknown",
            "originAllowed": services.policy.is_allowed(origin) if origin else None,
            "timestamp": utc_timestamp(),
        }

    @app.get("/api/openai/health")
    async def openai_health(request: Request):
        return {
            "status": "ok",
            "message": "OpenAI proxy server is running",
            "timestamp": utc_timestamp(),
            "clientOrigin": request.headers.get("origin", "Unknown"),
            "openai_api_key_configured": bool(settings.openai_api_key),
            "allowedOrigins": list(ALLOWED_ORIGINS),
        }

    @app.post("/api/chat")
    async def chat(request: Request):
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
        return await handle_chat(body)

    @app.post("/api/openai/chat/completions")
    async def openai_chat_completions(request: Request):
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
        return await handle_openai_proxy(
            body,
            request.headers.get("authorization"),
            settings.openai_api_key,
            services.proxy_http,
        )

    @app.get("/postmessage-test")
    async def postmessage_test():
        return await handle_postmessage_test_page()

    @app.websocket("/ws/frames")
    async def frames_endpoint(websocket: WebSocket):
        """WebSocket endpoint for remote frames; see FrameBridgeManager."""
        await services.bridge.handle_websocket(websocket)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    server_settings = app.state.services.settings
    logger.info(f"Starting server on http://{server_settings.host}:{server_settings.port}")
    uvicorn.run(app, host=server_settings.host, port=server_settings.port, http="h11")
