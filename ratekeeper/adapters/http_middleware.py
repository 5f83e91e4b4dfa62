"""HTTP middleware adapter.

Denied requests are answered directly with the configured status code and a
JSON body; allowed and exempt requests continue down the stack.

This middleware runs outside FastAPI's exception middleware, so limiter
errors are rendered here with the same handler the routes use.

Usage:
    adapter = create_rate_limit("middleware", max=10, window_ms=1000)
    adapter.install(app)
"""

from __future__ import annotations

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from ratekeeper.adapters.base import AbstractRateLimitAdapter
from ratekeeper.adapters.registry import register_adapter
from ratekeeper.core.errors import AppError
from ratekeeper.core.exception_handlers import app_error_handler


@register_adapter("middleware", "fastapi")
class HTTPMiddlewareAdapter(AbstractRateLimitAdapter):
    """Rate limiting as ``app.middleware("http")`` dispatch function."""

    async def __call__(self, request: Request, call_next) -> Response:
        try:
            decision = self.limiter.check(request)
        except AppError as exc:
            return await app_error_handler(request, exc)

        if decision is None or decision.allowed:
            return await call_next(request)

        return JSONResponse(
            status_code=self.limiter.options.status_code,
            content=self.limiter.denial_payload(decision),
            headers=self.limiter.denial_headers(decision) or None,
        )

    def install(self, app: FastAPI) -> None:
        app.middleware("http")(self)
