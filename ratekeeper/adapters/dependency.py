"""FastAPI dependency adapter.

Denials are raised as ``RateLimitExceededError`` and rendered by the global
exception handlers, so routes can also opt in individually::

    limiter = create_rate_limit("dependency", max=5)

    @router.post("/login", dependencies=[Depends(limiter)])
    async def login(): ...
"""

from __future__ import annotations

from fastapi import Depends, FastAPI, Request

from ratekeeper.adapters.base import AbstractRateLimitAdapter
from ratekeeper.adapters.registry import register_adapter
from ratekeeper.core.errors import RateLimitExceededError


@register_adapter("dependency")
class DependencyAdapter(AbstractRateLimitAdapter):
    """Rate limiting as a FastAPI dependency."""

    async def __call__(self, request: Request) -> None:
        decision = self.limiter.check(request)
        if decision is None or decision.allowed:
            return

        raise RateLimitExceededError(
            code="rate_limit_exceeded",
            message="Rate limit exceeded",
            details={"retry_after": decision.remaining_time},
            status_code=self.limiter.options.status_code,
            payload=self.limiter.denial_payload(decision),
            headers=self.limiter.denial_headers(decision),
        )

    def install(self, app: FastAPI) -> None:
        # Applies to routes included after this call.
        app.router.dependencies.append(Depends(self))
