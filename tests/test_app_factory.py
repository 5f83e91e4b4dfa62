"""End-to-end tests for the bundled service built from settings."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ratekeeper.core.app_factory import create_app
from ratekeeper.core.config import LogSettings, RateLimitSettings, Settings
from ratekeeper.core.errors import ConfigurationAppError, UnknownAdapterAppError


def _settings(**rate_limit) -> Settings:
    return Settings(
        rate_limit=RateLimitSettings(**rate_limit),
        log=LogSettings(level="WARNING"),
    )


@pytest.mark.parametrize("adapter", ["middleware", "dependency"])
def test_ping_is_limited_and_health_is_exempt(adapter: str) -> None:
    app = create_app(_settings(adapter=adapter, max=2, cooldown_ms=5000))

    with TestClient(app) as client:
        assert client.get("/v1/ping").status_code == 200
        assert client.get("/v1/ping").status_code == 200

        denied = client.get("/v1/ping")
        assert denied.status_code == 429
        assert denied.json()["remainingTime"] == 5
        assert denied.headers.get("X-Request-ID")

        for _ in range(5):
            assert client.get("/health").status_code == 200


def test_api_key_callers_are_counted_separately() -> None:
    app = create_app(_settings(max=1, trust_api_key=True))

    with TestClient(app) as client:
        assert client.get("/v1/ping", headers={"X-API-Key": "a"}).status_code == 200
        assert client.get("/v1/ping", headers={"X-API-Key": "b"}).status_code == 200
        assert client.get("/v1/ping", headers={"X-API-Key": "a"}).status_code == 429
        assert client.get("/v1/ping").status_code == 200


def test_disabled_limiting_never_denies() -> None:
    app = create_app(_settings(enabled=False, max=1))

    with TestClient(app) as client:
        assert all(client.get("/v1/ping").status_code == 200 for _ in range(5))
    assert app.state.rate_limit is None


def test_limiter_overrides_take_precedence() -> None:
    app = create_app(_settings(max=50), max=1, status_code=503)

    with TestClient(app) as client:
        client.get("/v1/ping")
        assert client.get("/v1/ping").status_code == 503


def test_unknown_adapter_rejected_at_startup() -> None:
    with pytest.raises(UnknownAdapterAppError):
        create_app(_settings(adapter="express"))


def test_invalid_override_rejected_at_startup() -> None:
    with pytest.raises(ConfigurationAppError):
        create_app(_settings(), cooldown_ms=-1)


def test_shutdown_releases_limiter_state() -> None:
    app = create_app(_settings(max=5))

    with TestClient(app) as client:
        client.get("/v1/ping")
        assert len(app.state.rate_limit.limiter.engine) == 1

    assert len(app.state.rate_limit.limiter.engine) == 0
