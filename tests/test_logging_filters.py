"""Tests for identity hashing and credential redaction in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from ratekeeper.core.logging import (
    REDACTED,
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    hash_key,
    set_request_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_caller_identity_is_hashed_not_blanked():
    logger, stream = _capture("test_identity")

    logger.info(
        "rate_limit.exceeded",
        extra={"rate_limit_key": "203.0.113.7", "client_ip": "198.51.100.4", "retry_after_s": 12},
    )

    record = json.loads(stream.getvalue())
    assert "203.0.113.7" not in stream.getvalue()
    assert record["rate_limit_key"] == hash_key("203.0.113.7")
    assert record["client_ip"] == hash_key("198.51.100.4")
    assert record["retry_after_s"] == 12


def test_credentials_are_redacted():
    logger, stream = _capture("test_credentials")

    logger.info("key_resolved", extra={"x-api-key": "sk-secret", "authorization": "Bearer abc"})

    record = json.loads(stream.getvalue())
    assert "sk-secret" not in stream.getvalue()
    assert record["x-api-key"] == REDACTED
    assert record["authorization"] == REDACTED


def test_nested_headers_are_scrubbed():
    logger, stream = _capture("test_nested")

    logger.info(
        "nested_event",
        extra={"headers": {"X-API-Key": "sk-secret", "user-agent": "pytest"}},
    )

    record = json.loads(stream.getvalue())
    assert record["headers"] == {"X-API-Key": REDACTED, "user-agent": "pytest"}


def test_unrelated_fields_pass_through():
    logger, stream = _capture("test_safe_fields")

    logger.info("request.completed", extra={"path": "/v1/ping", "status_code": 429, "token_count": 3})

    record = json.loads(stream.getvalue())
    assert record["path"] == "/v1/ping"
    assert record["status_code"] == 429
    assert record["token_count"] == 3
    assert REDACTED not in stream.getvalue()


def test_json_formatter_includes_request_id_from_context():
    logger, stream = _capture("test_request_id")

    set_request_id("req-123")
    try:
        logger.info("safe_event", extra={"key_hash": hash_key("K")})
    finally:
        clear_request_id()

    record = json.loads(stream.getvalue())
    assert record["request_id"] == "req-123"
    assert record["message"] == "safe_event"
    assert record["key_hash"] == hash_key("K")


def test_hash_key_is_stable_and_short():
    assert hash_key("203.0.113.7") == hash_key("203.0.113.7")
    assert hash_key("203.0.113.7") != hash_key("203.0.113.8")
    assert len(hash_key("anything")) == 16
