"""Application factory for the FastAPI demo service.

Centralizes app construction (middleware, handlers, rate limiting, routers)
so tests can build isolated instances with their own settings.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ratekeeper.adapters import get_adapter
from ratekeeper.api.routes import health_router, ping_router
from ratekeeper.core.config import Settings, settings as default_settings
from ratekeeper.core.exception_handlers import setup_exception_handlers
from ratekeeper.core.logging import configure_logging
from ratekeeper.core.middleware import request_id_middleware
from ratekeeper.core.rate_limit import RateLimiter, RateLimitOptions


def create_app(app_settings: Settings | None = None, **limiter_overrides) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the environment-loaded ones.
        **limiter_overrides: Limiter options overriding settings (e.g. key_gen).

    Returns:
        Configured FastAPI app.

    Raises:
        UnknownAdapterAppError: If RATE_LIMIT_ADAPTER names no registered adapter.
        ConfigurationAppError: If the limiter options are invalid.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    adapter = None
    if cfg.rate_limit.enabled:
        adapter_cls = get_adapter(cfg.rate_limit.adapter)
        options = RateLimitOptions.from_settings(cfg.rate_limit, **limiter_overrides)
        adapter = adapter_cls(RateLimiter(options))

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        if adapter is not None:
            adapter.close()

    app = FastAPI(
        title="Ratekeeper",
        description="Per-key sliding-window admission control with cooldown.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.rate_limit = adapter

    # Rate limiting must be installed before routers are included
    if adapter is not None:
        adapter.install(app)

    # Outermost, so denials also carry a request id
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(ping_router, prefix="/v1")
    app.include_router(health_router)

    return app
