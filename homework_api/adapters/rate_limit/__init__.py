"""Rate limiting adapters.

Keyed admission control in front of the upstream proxy: fixed or sliding
windows, optional penalty escalation, an upstream feedback hook and a
background expiry sweep. State is in-memory and per-process.
"""

from homework_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from homework_api.adapters.rate_limit.escalation import EscalationPolicy
from homework_api.adapters.rate_limit.factory import create_rate_limiter
from homework_api.adapters.rate_limit.in_memory import (
    UNKNOWN_CLIENT_KEY,
    InMemoryFixedWindowRateLimiter,
    InMemorySlidingWindowRateLimiter,
)
from homework_api.adapters.rate_limit.store import WindowRecord, WindowStore
from homework_api.adapters.rate_limit.sweeper import ExpirySweeper

__all__ = [
    "AbstractRateLimiter",
    "EscalationPolicy",
    "ExpirySweeper",
    "InMemoryFixedWindowRateLimiter",
    "InMemorySlidingWindowRateLimiter",
    "RateLimitDecision",
    "UNKNOWN_CLIENT_KEY",
    "WindowRecord",
    "WindowStore",
    "create_rate_limiter",
]
