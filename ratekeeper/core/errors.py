"""Application-level exception types.

This module defines the errors raised by the limiter and its adapters,
enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    option: str
    adapter: str
    available: list[str]
    http_status: int
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationAppError(AppError):
    """Raised when limiter options or settings are invalid."""


class UnknownAdapterAppError(AppError):
    """Raised when an adapter name is not registered."""


class KeyResolutionAppError(AppError):
    """Raised when a key generator breaks its contract (empty or non-string key)."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised by the dependency adapter when a request is denied.

    Attributes:
        status_code: Configured denial status code.
        payload: Denial body (status, message, remainingTime).
        headers: Extra response headers (Retry-After etc.).
    """

    status_code: int = 429
    payload: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
