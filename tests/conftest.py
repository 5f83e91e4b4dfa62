"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any ratekeeper import so settings never
pick up a developer's .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import Request


@pytest.fixture
def make_request():
    """Factory for bare ASGI requests (no app needed)."""

    def _make(
        path: str = "/v1/ping",
        *,
        client: str | None = "203.0.113.7",
        headers: dict[str, str] | None = None,
    ) -> Request:
        scope = {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "path": path,
            "root_path": "",
            "query_string": b"",
            "headers": [
                (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
            ],
            "client": (client, 50000) if client else None,
            "server": ("testserver", 80),
        }
        return Request(scope)

    return _make
