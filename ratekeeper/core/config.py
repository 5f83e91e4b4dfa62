"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class RateLimitSettings(BaseSettings):
    """Admission control configuration for the bundled service.

    Field names follow the limiter options; validation of the combination
    happens again when options are built, so invalid values fail at startup.
    """

    enabled: bool = Field(
        True,
        description="Enable per-key rate limiting",
    )
    adapter: str = Field(
        "middleware",
        description="Registered adapter used to install the limiter (middleware, dependency)",
    )
    max: int = Field(
        100,
        description="Requests permitted per key per window before blocking",
        ge=1,
    )
    window_ms: int = Field(
        60_000,
        description="Rolling window length in milliseconds",
        ge=1,
    )
    cooldown_ms: int = Field(
        60_000,
        description="Block duration in milliseconds once max is reached",
        ge=0,
    )
    status_code: int = Field(
        429,
        description="HTTP status code attached to denial responses",
        ge=400,
        le=599,
    )
    message: str = Field(
        "Rate limit exceeded. Please try again later.",
        description="Message echoed back on denial",
    )
    include_headers: bool = Field(
        True,
        description="Include Retry-After and X-RateLimit-Limit headers on denial",
    )
    sweep_interval_seconds: float = Field(
        0.0,
        description="Seconds between idle-key sweeps; 0 disables the sweeper",
        ge=0,
    )
    trust_api_key: bool = Field(
        False,
        description="Key callers by X-API-Key header when present, else by client address",
    )
    exempt_paths: str = Field(
        "/health",
        description="Comma-separated paths that bypass rate limiting",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate file after this many bytes (0 = no rotation)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
