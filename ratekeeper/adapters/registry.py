"""Adapter registry and factory.

Adapters are looked up by name. Unknown names fail loudly so a typo can never
leave an application silently unprotected.
"""

from __future__ import annotations

from typing import Any, Callable, Type

from ratekeeper.adapters.base import AbstractRateLimitAdapter
from ratekeeper.core.errors import UnknownAdapterAppError
from ratekeeper.core.rate_limit import RateLimiter

_ADAPTER_REGISTRY: dict[str, Type[AbstractRateLimitAdapter]] = {}


def register_adapter(*names: str) -> Callable[[Type[AbstractRateLimitAdapter]], Type[AbstractRateLimitAdapter]]:
    """Decorator to register an adapter class under one or more names."""

    def decorator(cls: Type[AbstractRateLimitAdapter]) -> Type[AbstractRateLimitAdapter]:
        if not issubclass(cls, AbstractRateLimitAdapter):
            raise TypeError(f"{cls.__name__} must inherit from AbstractRateLimitAdapter")
        for name in names:
            _ADAPTER_REGISTRY[name.lower()] = cls
        return cls

    return decorator


def get_adapter(name: str) -> Type[AbstractRateLimitAdapter]:
    """Look up a registered adapter class by name.

    Raises:
        UnknownAdapterAppError: If no adapter is registered under ``name``.
    """
    key = (name or "").lower()
    if key not in _ADAPTER_REGISTRY:
        available = list_adapters()
        raise UnknownAdapterAppError(
            code="unknown_rate_limit_adapter",
            message=f"Unknown rate limit adapter: '{name}'. Available: {', '.join(available)}",
            details={"adapter": str(name), "available": available},
        )
    return _ADAPTER_REGISTRY[key]


def list_adapters() -> list[str]:
    """Return names of all registered adapters."""
    return sorted(_ADAPTER_REGISTRY.keys())


def create_rate_limit(framework: str, **options: Any) -> AbstractRateLimitAdapter:
    """Build a rate limit adapter by name.

    Args:
        framework: Registered adapter name (e.g. "middleware", "dependency").
        **options: Limiter options (max, window_ms/windowMs, cooldown_ms, ...).

    Returns:
        Adapter wrapping a freshly configured RateLimiter.

    Raises:
        UnknownAdapterAppError: If ``framework`` is not registered.
        ConfigurationAppError: If any option is invalid.
    """
    adapter_cls = get_adapter(framework)
    return adapter_cls(RateLimiter.from_options(**options))
