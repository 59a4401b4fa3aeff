"""Tests for sensitive data filtering and correlation in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from docgate.core.config import LogSettings
from docgate.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    SubmissionIdFilter,
    clear_submission_id,
    configure_logging,
    set_submission_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SubmissionIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_tokens_and_signatures():
    """Ensure bearer tokens and signatures never reach the output."""

    logger, stream = _capture("test_token_redaction")

    logger.info(
        "submit_event",
        extra={
            "token": "very simple token",
            "authorization": "Bearer abc",
            "signature": "signed-by-me",
            "document_type": "LP_INTRODUCE_GOODS",
        },
    )

    output = stream.getvalue()

    assert "very simple token" not in output
    assert "Bearer abc" not in output
    assert "signed-by-me" not in output
    assert "[REDACTED]" in output
    assert "LP_INTRODUCE_GOODS" in output


def test_sensitive_filter_allows_admission_fields():
    """Verify limiter fields pass through unmodified."""

    logger, stream = _capture("test_safe_fields")

    logger.info(
        "admission.granted",
        extra={"strategy": "sliding_window", "live": 2, "limit": 5, "waited_s": 0.25},
    )

    record = json.loads(stream.getvalue())

    assert record["message"] == "admission.granted"
    assert record["strategy"] == "sliding_window"
    assert record["live"] == 2
    assert record["waited_s"] == 0.25
    assert "[REDACTED]" not in stream.getvalue()


def test_sensitive_keys_match_case_insensitively():
    """Ensure camelCase payload keys are caught as well."""

    logger, stream = _capture("test_case_insensitive")

    logger.info(
        "payload_event",
        extra={"productDocument": "ZG9j", "Authorization": "Bearer x", "productGroup": "milk"},
    )

    record = json.loads(stream.getvalue())

    assert record["productDocument"] == "[REDACTED]"
    assert record["Authorization"] == "[REDACTED]"
    assert record["productGroup"] == "milk"


def test_submission_id_attached_from_context():
    logger, stream = _capture("test_submission_id")

    set_submission_id("sub-123")
    try:
        logger.info("documents.submit")
    finally:
        clear_submission_id()
    logger.info("after")

    first, second = (json.loads(line) for line in stream.getvalue().splitlines())
    assert first["submission_id"] == "sub-123"
    assert "submission_id" not in second


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_to_rotating_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "docgate.log"

    configure_logging(LogSettings(output="file", file_path=str(log_file), level="DEBUG"))
    logging.getLogger("docgate.test").debug("file_event", extra={"token": "hidden"})
    for handler in restore_root_logger.handlers:
        handler.flush()

    content = log_file.read_text(encoding="utf-8")
    record = json.loads(content.splitlines()[-1])
    assert record["message"] == "file_event"
    assert record["token"] == "[REDACTED]"
    assert restore_root_logger.level == logging.DEBUG


def test_configure_logging_plain_format(restore_root_logger):
    configure_logging(LogSettings(format="plain", level="warning"))

    (handler,) = restore_root_logger.handlers
    assert not isinstance(handler.formatter, JsonFormatter)
    assert restore_root_logger.level == logging.WARNING
