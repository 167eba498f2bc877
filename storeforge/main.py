"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from storeforge.api.router import api_router
from storeforge.api.webhooks.capture import RawBodyCaptureMiddleware
from storeforge.api.webhooks.context import WebhookUnauthorized
from storeforge.core.config import Settings, get_settings
from storeforge.core.logging_config import (
    generate_request_id,
    request_id_var,
    setup_logging,
)
from storeforge.integrations.shopify.webhooks import WebhookVerifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    setup_logging(debug=settings.debug)
    logger.info("Starting %s v%s", settings.project_name, settings.version)
    logger.info("Environment: %s", settings.environment)
    if not app.state.webhook_verifier.configured:
        logger.warning("Shopify client secret not set; every webhook will be rejected")
    yield
    logger.info("Shutting down...")
    await app.state.redis_pool.disconnect()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    # Sentry/GlitchTip init (before middleware)
    if settings.sentry_dsn:
        import sentry_sdk

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
        )

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.webhook_verifier = WebhookVerifier(
        settings.shopify_client_secret.get_secret_value()
    )
    app.state.redis_pool = aioredis.ConnectionPool.from_url(
        str(settings.redis_url), decode_responses=True
    )

    # Raw body capture runs before routing so signatures see the exact wire bytes
    app.add_middleware(
        RawBodyCaptureMiddleware,
        path_prefix=settings.webhook_path_prefix,
        max_bytes=settings.webhook_max_body_bytes,
    )

    # Request ID middleware (outermost, so capture failures are tagged too)
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Response:
        rid = request.headers.get("X-Request-ID") or generate_request_id()
        request_id_var.set(rid)
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response

    app.include_router(api_router)

    # Webhook callers only look at status codes; the reason stays in our logs
    @app.exception_handler(WebhookUnauthorized)
    async def webhook_unauthorized_handler(
        _request: Request, _exc: WebhookUnauthorized
    ) -> Response:
        return Response(status_code=401)

    @app.exception_handler(Exception)
    async def global_exception_handler(_request: Request, exc: Exception) -> Response:
        """Handle unhandled exceptions with a bare 500."""
        logger.exception("Unhandled exception: %s", exc)
        return Response(status_code=500)

    # Root endpoint
    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        """Plain liveness answer for load balancers and the Shopify app review."""
        return "OK"

    return app


app = create_app()
