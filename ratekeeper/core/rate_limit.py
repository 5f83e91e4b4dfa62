"""Rate limiter options and request-level integration.

This module sits between transport adapters and the admission engine:

- Options are validated once, at construction, so a misconfigured limiter
  fails at startup rather than producing degenerate decisions later.
- Key derivation and bypass are pluggable callables. The limiter depends on
  their contract only, so tests can substitute plain lambdas.
- Bypassed requests never reach the engine and leave no trace in its store.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ratekeeper.core.config import RateLimitSettings
from ratekeeper.core.errors import ConfigurationAppError, KeyResolutionAppError
from ratekeeper.core.logging import hash_key
from ratekeeper.engine.base import AbstractAdmissionEngine, Decision
from ratekeeper.engine.in_memory import InMemorySlidingWindowEngine
from ratekeeper.engine.sweeper import StoreSweeper

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Rate limit exceeded. Please try again later."


class KeyGenerator(Protocol):
    """Maps a request to a non-empty caller identity. Must be side-effect free."""

    def __call__(self, request: Request) -> str: ...


class BypassPolicy(Protocol):
    """Returns True when a request is exempt from limiting."""

    def __call__(self, request: Request) -> bool: ...


def client_address_key(request: Request) -> str:
    """Key requests by the client's network address."""
    return request.client.host if request.client else "unknown"


def api_key_or_address_key(header: str = "X-API-Key") -> KeyGenerator:
    """Build a key generator preferring an API key header over the client address.

    Keys are namespaced so an API key can never collide with an address.
    """

    def _key(request: Request) -> str:
        api_key = request.headers.get(header)
        if api_key:
            return f"api_key:{api_key}"
        return f"ip:{client_address_key(request)}"

    return _key


def never_skip(request: Request) -> bool:
    return False


def skip_paths(*paths: str) -> BypassPolicy:
    """Build a bypass policy exempting exact request paths (e.g. health checks)."""
    exempt = frozenset(p for p in paths if p)

    def _skip(request: Request) -> bool:
        return request.url.path in exempt

    return _skip


class RateLimitOptions(BaseModel):
    """Recognized limiter options.

    Both snake_case names and the camelCase aliases (``windowMs``,
    ``cooldownMs``, ``statusCode``, ``keyGen``) are accepted.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    max: int = Field(100, ge=1, description="Requests permitted per key per window")
    window_ms: int = Field(60_000, ge=1, alias="windowMs")
    cooldown_ms: int = Field(60_000, ge=0, alias="cooldownMs")
    message: str | dict[str, Any] = DEFAULT_MESSAGE
    status_code: int = Field(429, ge=400, le=599, alias="statusCode")
    key_gen: Callable[..., str] = Field(client_address_key, alias="keyGen")
    skip: Callable[..., bool] = never_skip
    include_headers: bool = Field(True, alias="includeHeaders")
    sweep_interval_seconds: float = Field(0.0, ge=0, alias="sweepIntervalSeconds")

    @classmethod
    def build(cls, **options: Any) -> "RateLimitOptions":
        """Validate raw options, raising ConfigurationAppError on failure."""
        try:
            return cls(**options)
        except ValidationError as exc:
            errors = [
                {"option": ".".join(str(part) for part in err["loc"]) or "options", "msg": err["msg"]}
                for err in exc.errors()
            ]
            first = errors[0]
            raise ConfigurationAppError(
                code="invalid_rate_limit_option",
                message=f"Invalid rate limit option '{first['option']}': {first['msg']}",
                details={"option": first["option"], "context": {"errors": errors}},
            ) from exc

    @classmethod
    def from_settings(cls, rate_limit_settings: RateLimitSettings, **overrides: Any) -> "RateLimitOptions":
        """Build options from environment settings, with keyword overrides."""
        cfg = rate_limit_settings
        key_gen = api_key_or_address_key() if cfg.trust_api_key else client_address_key
        exempt = [p.strip() for p in cfg.exempt_paths.split(",") if p.strip()]
        options: dict[str, Any] = {
            "max": cfg.max,
            "window_ms": cfg.window_ms,
            "cooldown_ms": cfg.cooldown_ms,
            "message": cfg.message,
            "status_code": cfg.status_code,
            "include_headers": cfg.include_headers,
            "sweep_interval_seconds": cfg.sweep_interval_seconds,
            "key_gen": key_gen,
            "skip": skip_paths(*exempt) if exempt else never_skip,
        }
        options.update(overrides)
        return cls.build(**options)


class RateLimiter:
    """Admission control for requests: bypass, key resolution, decision.

    The limiter owns its engine and, when configured, a background sweeper.
    Call ``close()`` on shutdown to stop the sweeper and drop the store.
    """

    def __init__(
        self,
        options: RateLimitOptions | None = None,
        *,
        engine: AbstractAdmissionEngine | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.options = options or RateLimitOptions()
        if engine is None:
            engine_kwargs: dict[str, Any] = {}
            if clock is not None:
                engine_kwargs["clock"] = clock
            engine = InMemorySlidingWindowEngine(
                max_requests=self.options.max,
                window_ms=self.options.window_ms,
                cooldown_ms=self.options.cooldown_ms,
                **engine_kwargs,
            )
        self.engine = engine
        self._sweeper = StoreSweeper(engine, self.options.sweep_interval_seconds)
        self._sweeper.start()

    @classmethod
    def from_options(cls, **options: Any) -> "RateLimiter":
        return cls(RateLimitOptions.build(**options))

    def resolve_key(self, request: Request) -> str:
        """Derive the store key for a request, enforcing the generator contract.

        Raises:
            KeyResolutionAppError: If the generator returns an empty or non-string key.
        """
        key = self.options.key_gen(request)
        if not isinstance(key, str) or not key:
            raise KeyResolutionAppError(
                code="invalid_rate_limit_key",
                message="Key generator must return a non-empty string",
                details={"context": {"returned_type": type(key).__name__}},
            )
        return key

    def check(self, request: Request, now: int | None = None) -> Decision | None:
        """Evaluate a request.

        Args:
            request: Incoming request.
            now: Optional epoch-ms timestamp; defaults to the engine clock.

        Returns:
            None when the request is exempt, otherwise the engine's Decision.
        """
        if self.options.skip(request):
            logger.debug("rate_limit.skipped", extra={"path": request.url.path})
            return None

        key = self.resolve_key(request)
        decision = self.engine.decide(key, now)
        key_hash = hash_key(key)

        # Read back by the request-id middleware for its access log.
        request.state.rate_limit_key_hash = key_hash
        request.state.rate_limit_decision = decision

        if decision.allowed:
            logger.debug("rate_limit.allowed", extra={"key_hash": key_hash})
        else:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "key_hash": key_hash,
                    "limit": self.options.max,
                    "window_ms": self.options.window_ms,
                    "retry_after_s": decision.remaining_time,
                    "path": request.url.path,
                },
            )
        return decision

    def denial_payload(self, decision: Decision) -> dict[str, Any]:
        """Build the rejection body for a Deny decision."""
        return {
            "status": self.options.status_code,
            "message": self.options.message,
            "remainingTime": decision.remaining_time,
        }

    def denial_headers(self, decision: Decision) -> dict[str, str]:
        if not self.options.include_headers:
            return {}
        return {
            "Retry-After": str(decision.remaining_time),
            "X-RateLimit-Limit": str(self.options.max),
        }

    def close(self) -> None:
        self._sweeper.stop()
        self.engine.close()
