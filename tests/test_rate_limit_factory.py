"""Tests for building limiters from settings."""

import pytest

from homework_api.adapters.rate_limit import (
    InMemoryFixedWindowRateLimiter,
    InMemorySlidingWindowRateLimiter,
    create_rate_limiter,
)
from homework_api.core.config import RateLimitSettings
from homework_api.core.errors import ConfigurationError


def test_default_settings_build_fixed_window_with_escalation() -> None:
    limiter = create_rate_limiter(RateLimitSettings(strategy="fixed", window_ms=60_000, max_requests=5))

    assert isinstance(limiter, InMemoryFixedWindowRateLimiter)
    assert limiter.limit == 5
    assert limiter.window_ms == 60_000
    assert limiter.escalation is not None
    assert limiter.escalation.multiplier == 2
    assert limiter.escalation.cap_factor == 16


def test_sliding_strategy_without_escalation() -> None:
    limiter = create_rate_limiter(
        RateLimitSettings(strategy="sliding", window_ms=10_000, max_requests=2, escalation_enabled=False)
    )

    assert isinstance(limiter, InMemorySlidingWindowRateLimiter)
    assert limiter.escalation is None


def test_injected_clock_is_used() -> None:
    limiter = create_rate_limiter(
        RateLimitSettings(strategy="fixed", window_ms=10_000, max_requests=1),
        clock=lambda: 42_000.0,
    )

    limiter.check("k")
    assert limiter.check("k").reset_at_ms == 52_000.0


@pytest.mark.parametrize(
    "overrides",
    [{"window_ms": 0}, {"max_requests": 0}, {"max_requests": -5}, {"escalation_multiplier": 0.5}],
)
def test_invalid_settings_fail_fast(overrides: dict) -> None:
    config = RateLimitSettings(strategy="fixed", window_ms=60_000, max_requests=5).model_copy(update=overrides)

    with pytest.raises(ConfigurationError):
        create_rate_limiter(config)


def test_fallback_key_from_settings() -> None:
    limiter = create_rate_limiter(
        RateLimitSettings(strategy="fixed", window_ms=60_000, max_requests=1, fallback_client_key="anon")
    )

    limiter.check("", now=0)
    assert "anon" in limiter.store
