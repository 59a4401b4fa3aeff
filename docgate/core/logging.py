"""Logging utilities with JSON formatting, redaction, and submission correlation.

This module centralizes logging configuration, including:
- Context-aware submission_id propagation via contextvars
- Sensitive data redaction on log records (tokens, signatures, payloads)
- JSON formatter for machine-friendly logs
- stderr or rotating-file handlers
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable

from docgate.core.config import LogSettings, settings

_submission_id_var: ContextVar[str | None] = ContextVar("submission_id", default=None)

# Default sensitive keys to redact from structured fields
SENSITIVE_KEYS_DEFAULT: set[str] = {
    "token",
    "authorization",
    "bearer",
    "signature",
    "secret",
    "password",
    "docs_api_token",
    "product_document",
    "productdocument",
    "document",
    "cookie",
    "set-cookie",
}

# Logging fields we intentionally exclude from extra payload capture
_EXCLUDED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "stack",
}


def set_submission_id(submission_id: str | None) -> None:
    """Store the current submission id in a context variable.

    Args:
        submission_id: Correlation identifier to associate with subsequent logs.
    """

    _submission_id_var.set(submission_id)


def get_submission_id() -> str | None:
    """Fetch the current submission id from context."""

    return _submission_id_var.get()


def clear_submission_id() -> None:
    """Clear any stored submission id from context."""

    _submission_id_var.set(None)


def _extras(record: LogRecord, sensitive_keys: set[str]) -> dict[str, Any]:
    """Extra fields passed via ``extra=``, sensitive ones replaced by a marker."""

    return {
        key: "[REDACTED]" if key.lower() in sensitive_keys else value
        for key, value in record.__dict__.items()
        if key not in _EXCLUDED_ATTRS and not key.startswith("_")
    }


class SubmissionIdFilter(logging.Filter):
    """Attach submission_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "submission_id", None) is None:
            submission_id = get_submission_id()
            if submission_id:
                record.submission_id = submission_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Mask sensitive ``extra=`` fields in place, before any formatter sees them."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = {key.lower() for key in sensitive_keys or SENSITIVE_KEYS_DEFAULT}

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in _extras(record, self.sensitive_keys).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; extras are masked even without the filter."""

    def format(self, record: LogRecord) -> str:  # noqa: D401
        record_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        submission_id = get_submission_id()
        if submission_id:
            record_data["submission_id"] = submission_id
        record_data.update(_extras(record, SENSITIVE_KEYS_DEFAULT))

        if record.exc_info:
            record_data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(record_data, default=str)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output == "file":
        file_path = Path(log_settings.file_path or "logs/docgate.log")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        # max_bytes=0 never rolls over
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )

    # stderr keeps stdout free for the operator CLI's responses
    return logging.StreamHandler(sys.stderr)


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Configure root logger with JSON formatter and redaction.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    level = getattr(logging, cfg.level.upper(), logging.INFO)
    handler = _build_handler(cfg)

    handler.addFilter(SubmissionIdFilter())
    handler.addFilter(SensitiveDataFilter())

    if cfg.format == "plain":
        formatter: logging.Formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(threadName)s %(name)s %(message)s"
        )
    else:
        formatter = JsonFormatter()

    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
