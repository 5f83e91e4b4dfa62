"""HTTP-level tests for the middleware and dependency adapters."""

from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from ratekeeper.adapters import create_rate_limit
from ratekeeper.core.exception_handlers import setup_exception_handlers
from ratekeeper.core.rate_limit import DEFAULT_MESSAGE


def _build_app(framework: str, **options) -> tuple[FastAPI, object]:
    app = FastAPI()
    setup_exception_handlers(app)
    adapter = create_rate_limit(framework, **options)
    adapter.install(app)

    @app.get("/items")
    async def items():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app, adapter


@pytest.mark.parametrize("framework", ["middleware", "dependency"])
def test_denies_after_max_with_payload(framework: str) -> None:
    app, _ = _build_app(framework, max=2, window_ms=60_000, cooldown_ms=30_000)
    client = TestClient(app)

    assert client.get("/items").status_code == 200
    assert client.get("/items").status_code == 200

    resp = client.get("/items")
    assert resp.status_code == 429
    assert resp.json() == {"status": 429, "message": DEFAULT_MESSAGE, "remainingTime": 30}
    assert resp.headers["Retry-After"] == "30"
    assert resp.headers["X-RateLimit-Limit"] == "2"


@pytest.mark.parametrize("framework", ["middleware", "dependency"])
def test_custom_status_and_structured_message(framework: str) -> None:
    app, _ = _build_app(
        framework,
        max=1,
        statusCode=503,
        message={"error": "busy"},
        include_headers=False,
    )
    client = TestClient(app)
    client.get("/items")

    resp = client.get("/items")
    assert resp.status_code == 503
    assert resp.json()["message"] == {"error": "busy"}
    assert "Retry-After" not in resp.headers


@pytest.mark.parametrize("framework", ["middleware", "dependency"])
def test_skipped_paths_are_never_counted(framework: str) -> None:
    app, adapter = _build_app(
        framework,
        max=1,
        skip=lambda request: request.url.path == "/health",
    )
    client = TestClient(app)

    for _ in range(5):
        assert client.get("/health").status_code == 200

    assert len(adapter.limiter.engine) == 0
    assert client.get("/items").status_code == 200


@pytest.mark.parametrize("framework", ["middleware", "dependency"])
def test_keys_are_isolated(framework: str) -> None:
    app, _ = _build_app(
        framework,
        max=1,
        key_gen=lambda request: request.headers.get("X-Caller", "anon"),
    )
    client = TestClient(app)

    assert client.get("/items", headers={"X-Caller": "A"}).status_code == 200
    assert client.get("/items", headers={"X-Caller": "B"}).status_code == 200
    assert client.get("/items", headers={"X-Caller": "A"}).status_code == 429
    assert client.get("/items", headers={"X-Caller": "C"}).status_code == 200


def test_dependency_can_guard_a_single_route() -> None:
    app = FastAPI()
    setup_exception_handlers(app)
    guard = create_rate_limit("dependency", max=1)

    @app.post("/login", dependencies=[Depends(guard)])
    async def login():
        return {"ok": True}

    @app.get("/open")
    async def open_route():
        return {"ok": True}

    client = TestClient(app)
    assert client.post("/login").status_code == 200
    assert client.post("/login").status_code == 429
    assert client.get("/open").status_code == 200


@pytest.mark.parametrize("framework", ["middleware", "dependency"])
def test_invalid_generated_key_maps_to_500(framework: str) -> None:
    app, _ = _build_app(framework, key_gen=lambda request: "")
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/items")

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "invalid_rate_limit_key"
