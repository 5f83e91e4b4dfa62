"""Transport adapters - install a rate limiter into a web application.

Importing this package registers the built-in adapters.
"""

from ratekeeper.adapters.base import AbstractRateLimitAdapter
from ratekeeper.adapters.registry import (
    create_rate_limit,
    get_adapter,
    list_adapters,
    register_adapter,
)
from ratekeeper.adapters.http_middleware import HTTPMiddlewareAdapter
from ratekeeper.adapters.dependency import DependencyAdapter

__all__ = [
    "AbstractRateLimitAdapter",
    "DependencyAdapter",
    "HTTPMiddlewareAdapter",
    "create_rate_limit",
    "get_adapter",
    "list_adapters",
    "register_adapter",
]
