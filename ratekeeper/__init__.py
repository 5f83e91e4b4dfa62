"""Per-key sliding-window rate limiting with cooldown for FastAPI apps."""

from ratekeeper.adapters import create_rate_limit, list_adapters, register_adapter
from ratekeeper.core.errors import (
    AppError,
    ConfigurationAppError,
    KeyResolutionAppError,
    RateLimitExceededError,
    UnknownAdapterAppError,
)
from ratekeeper.core.rate_limit import (
    RateLimiter,
    RateLimitOptions,
    api_key_or_address_key,
    client_address_key,
    never_skip,
    skip_paths,
)
from ratekeeper.engine import Decision, InMemorySlidingWindowEngine, StoreSweeper

__all__ = [
    "AppError",
    "ConfigurationAppError",
    "Decision",
    "InMemorySlidingWindowEngine",
    "KeyResolutionAppError",
    "RateLimitExceededError",
    "RateLimitOptions",
    "RateLimiter",
    "StoreSweeper",
    "UnknownAdapterAppError",
    "api_key_or_address_key",
    "client_address_key",
    "create_rate_limit",
    "list_adapters",
    "never_skip",
    "register_adapter",
    "skip_paths",
]
