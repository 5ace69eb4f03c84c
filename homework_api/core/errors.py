"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Admission decisions are values (see RateLimitDecision); RateLimitExceeded
only exists so the HTTP layer can turn a rejection into a 429 response.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    actual_value: int
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    model: str
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


class ValidationAppError(AppError):
    """Raised when request input validation fails."""


class ConfigurationError(AppError):
    """Raised when the service or the limiter is misconfigured.

    Construction-time only: a limiter with a non-positive window or quota
    must never be built, since it would silently admit unlimited traffic.
    """


@dataclass
class RateLimitExceeded(AppError):
    """Raised by the HTTP layer when a client is not admitted.

    Attributes:
        retry_after_seconds: Positive delay the client should wait.
    """

    retry_after_seconds: int = 1


class LLMAppError(AppError):
    """Raised when the upstream chat-completion call fails."""


@dataclass
class UpstreamAPIError(LLMAppError):
    """Upstream returned a non-success HTTP status that is relayed as-is."""

    status_code: int = 502


class UpstreamTimeoutError(LLMAppError):
    """Upstream did not answer within the configured timeout."""


@dataclass
class UpstreamRateLimitError(LLMAppError):
    """Upstream answered 429; carries its Retry-After in seconds."""

    retry_after_seconds: int = 60
