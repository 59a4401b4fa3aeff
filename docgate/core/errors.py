"""Application-level exception types.

This module defines domain errors used across the admission controllers,
adapters and services, enabling consistent error handling and logging.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and callers.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    limit: int
    period_seconds: float
    strategy: str
    timeout_seconds: float
    waited_seconds: float
    http_status: int
    field: str
    document_format: str
    submission_id: str
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
    """Raised when limiter configuration is invalid."""


class ValidationAppError(AppError):
    """Raised when caller input validation fails."""


class AdmissionCancelledError(AppError):
    """Raised when a blocked acquire() is cancelled before admission."""


class AdmissionTimeoutError(AdmissionCancelledError):
    """Raised when acquire() gives up because its deadline elapsed."""


class ControllerClosedError(AppError):
    """Raised when acquire() is called on, or released by, a closed controller."""


class SubmissionAppError(AppError):
    """Raised when the gated document submission fails."""
