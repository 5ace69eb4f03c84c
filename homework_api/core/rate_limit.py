"""Rate limiting dependency for FastAPI routes.

This module wires the limiter adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- The limiter is built by the app factory and kept on ``app.state`` so
  several apps (or tests) never share state.
- Rejections become RateLimitExceeded, rendered as 429 by the exception
  handlers.

Client identification:
- First value of X-Forwarded-For, else X-Real-IP.
- Without either, all traffic shares the configured fallback bucket.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request

from homework_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from homework_api.core.config import settings
from homework_api.core.errors import RateLimitExceeded
from homework_api.core.logging import hash_identifier

logger = logging.getLogger(__name__)

FORWARDED_FOR_HEADER = "X-Forwarded-For"
REAL_IP_HEADER = "X-Real-IP"


def extract_client_key(
    forwarded_for: str | list[str] | None,
    real_ip: str | None = None,
    fallback: str | None = None,
) -> str:
    """Derive the client key from proxy headers.

    No address parsing or normalization happens; the value is only a
    bucket name.

    Args:
        forwarded_for: X-Forwarded-For value(s); the first entry wins.
        real_ip: X-Real-IP value used when X-Forwarded-For is absent.
        fallback: Shared bucket for unattributable traffic.

    Returns:
        str: Client key.

    Examples:
        >>> extract_client_key("203.0.113.7, 10.0.0.1")
        '203.0.113.7'
        >>> extract_client_key(None, None, "unknown")
        'unknown'
    """
    fallback = fallback or settings.rate_limit.fallback_client_key

    if isinstance(forwarded_for, list):
        forwarded_for = forwarded_for[0] if forwarded_for else None

    for candidate in (forwarded_for, real_ip):
        if candidate:
            first = candidate.split(",")[0].strip()
            if first:
                return first
    return fallback


def get_client_key(request: Request) -> str:
    """FastAPI dependency returning the client key for the current request."""
    forwarded = request.headers.getlist(FORWARDED_FOR_HEADER)
    return extract_client_key(
        forwarded,
        request.headers.get(REAL_IP_HEADER),
        settings.rate_limit.fallback_client_key,
    )


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""
    return request.app.state.rate_limiter


def build_rate_limit_exceeded(decision: RateLimitDecision) -> RateLimitExceeded:
    """Translate a rejection into the error rendered as HTTP 429."""
    retry_after = max(1, decision.retry_after_seconds)
    return RateLimitExceeded(
        code="rate_limit_exceeded",
        message=f"Please wait {retry_after} seconds before trying again",
        details={
            "retry_after": retry_after,
            "limit": decision.limit,
            "remaining": decision.remaining,
            "reset_at": int(decision.reset_at_ms // 1000),
        },
        retry_after_seconds=retry_after,
    )


async def enforce_rate_limit(
    client_key: Annotated[str, Depends(get_client_key)],
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
) -> None:
    """FastAPI dependency enforcing per-client admission.

    When enabled, records one request for the client. If the client is over
    its quota (or locked out by an upstream penalty), raises
    RateLimitExceeded.

    Raises:
        RateLimitExceeded: When the request is not admitted.
    """

    if not settings.rate_limit.enabled:
        return

    decision = limiter.check(client_key)
    key_hash = hash_identifier(client_key)

    if decision.admitted:
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
            },
        )
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": decision.limit,
            "retry_after_s": decision.retry_after_seconds,
        },
    )
    raise build_rate_limit_exceeded(decision)
