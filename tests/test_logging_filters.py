"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from homework_api.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
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


def test_redacts_secrets_and_homework_content():
    logger, stream = _capture("test_redaction")

    logger.info(
        "chat.relay",
        extra={
            "api_key": "sk-secret-123",
            "question": "Solve x^2 = 49 for my exam",
            "client_key": "203.0.113.7",
            "key_hash": "abc123",
        },
    )

    output = stream.getvalue()
    assert "sk-secret-123" not in output
    assert "Solve x^2" not in output
    assert "203.0.113.7" not in output
    assert "[REDACTED]" in output
    assert "abc123" in output


def test_redacts_nested_messages():
    logger, stream = _capture("test_nested")

    logger.info(
        "nested_event",
        extra={
            "payload": {
                "messages": [{"role": "user", "content": "my homework"}],
                "model": "test-model",
            },
            "headers": {"Authorization": "Bearer xyz", "user-agent": "pytest"},
        },
    )

    output = stream.getvalue()
    assert "my homework" not in output
    assert "Bearer xyz" not in output
    assert "test-model" in output
    assert "pytest" in output


def test_safe_fields_pass_through():
    logger, stream = _capture("test_safe_fields")

    logger.info(
        "rate_limit.exceeded",
        extra={"limit": 5, "retry_after_s": 60, "route": "/api/chat"},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.exceeded"
    assert record["limit"] == 5
    assert record["retry_after_s"] == 60
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context():
    logger, stream = _capture("test_request_id")

    set_request_id("req-123")
    try:
        logger.warning("event")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_hash_identifier_is_stable_and_short():
    assert hash_identifier("203.0.113.7") == hash_identifier("203.0.113.7")
    assert hash_identifier("203.0.113.7") != hash_identifier("203.0.113.8")
    assert len(hash_identifier("203.0.113.7")) == 16
