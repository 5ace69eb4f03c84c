"""Application factory for the FastAPI app.

Centralizes app construction (limiter, lifespan, middleware, handlers,
routers) so tests can build isolated apps with their own limiter.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from homework_api.adapters.rate_limit.base import AbstractRateLimiter
from homework_api.adapters.rate_limit.factory import create_rate_limiter
from homework_api.adapters.rate_limit.sweeper import ExpirySweeper
from homework_api.api.routes import chat_router, health_router
from homework_api.core.config import settings
from homework_api.core.exception_handlers import setup_exception_handlers
from homework_api.core.logging import configure_logging
from homework_api.core.middleware import request_id_middleware
from homework_api.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    origins = [o.strip() for o in settings.app.cors_allow_origins.split(",") if o.strip()]
    return origins or ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the expiry sweeper on startup and stop it on shutdown."""
    sweeper: ExpirySweeper | None = None
    if settings.rate_limit.enabled and settings.rate_limit.sweep_enabled:
        interval_ms = settings.rate_limit.sweep_interval_ms or settings.rate_limit.window_ms
        sweeper = ExpirySweeper(app.state.rate_limiter, interval_seconds=interval_ms / 1000)
        await sweeper.start()
    app.state.sweeper = sweeper

    logger.info("app.started", extra={"env": settings.app_env})
    try:
        yield
    finally:
        if sweeper is not None:
            await sweeper.stop()
        logger.info("app.stopped")


def create_app(rate_limiter: AbstractRateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to install; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ConfigurationError: If the rate limit settings are invalid.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Homework Helper API",
        description=(
            "Proxy between the homework helper web form and an upstream LLM "
            "chat-completion API, with per-client rate limiting, penalty "
            "escalation and upstream 429 feedback."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app.debug,
    )

    # Fail fast on a bad limiter configuration
    app.state.rate_limiter = rate_limiter or create_rate_limiter(settings.rate_limit)
    app.state.chat_service = None

    # Middleware
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    app.include_router(chat_router, prefix="/api")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
