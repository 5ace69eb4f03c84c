"""Factory for rate limiter instances."""

from __future__ import annotations

from typing import Callable

from homework_api.adapters.rate_limit.base import AbstractRateLimiter
from homework_api.adapters.rate_limit.escalation import EscalationPolicy
from homework_api.adapters.rate_limit.in_memory import (
    InMemoryFixedWindowRateLimiter,
    InMemoryRateLimiter,
    InMemorySlidingWindowRateLimiter,
    wall_clock_ms,
)
from homework_api.core.config import RateLimitSettings
from homework_api.core.errors import ConfigurationError


def create_rate_limiter(
    config: RateLimitSettings,
    *,
    clock: Callable[[], float] = wall_clock_ms,
) -> AbstractRateLimiter:
    """Build the limiter selected by configuration.

    Args:
        config: Rate limit settings (strategy, window, quota, escalation).
        clock: Time source returning milliseconds.

    Returns:
        AbstractRateLimiter: Configured limiter with its own store.

    Raises:
        ConfigurationError: On an unknown strategy or invalid limits.
    """
    escalation = None
    if config.escalation_enabled:
        escalation = EscalationPolicy(
            multiplier=config.escalation_multiplier,
            cap_factor=config.escalation_cap_factor,
        )

    strategy = config.strategy.lower()
    if strategy == "fixed":
        limiter_cls: type[InMemoryRateLimiter] = InMemoryFixedWindowRateLimiter
    elif strategy == "sliding":
        limiter_cls = InMemorySlidingWindowRateLimiter
    else:
        raise ConfigurationError(
            code="unknown_rate_limit_strategy",
            message=f"Unknown rate limit strategy: '{config.strategy}'. Supported: fixed, sliding",
        )

    return limiter_cls(
        limit=config.max_requests,
        window_ms=config.window_ms,
        escalation=escalation,
        clock=clock,
        fallback_key=config.fallback_client_key,
    )
