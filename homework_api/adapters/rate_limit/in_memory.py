"""In-memory rate limiters (fixed and sliding window).

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: each decision runs under the store lock.
- Lazy expiry: an expired record found at check time is treated as absent.
  The sweep only reclaims memory and never decides admission.
"""

from __future__ import annotations

import logging
import math
import time
from abc import abstractmethod
from typing import Callable

from homework_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from homework_api.adapters.rate_limit.escalation import EscalationPolicy
from homework_api.adapters.rate_limit.store import WindowRecord, WindowStore
from homework_api.core.errors import ConfigurationError
from homework_api.core.logging import hash_identifier

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT_KEY = "unknown"


def wall_clock_ms() -> float:
    """Current UNIX time in milliseconds."""
    return time.time() * 1000.0


def _retry_after_seconds(deadline_ms: float, now: float) -> int:
    return max(1, int(math.ceil((deadline_ms - now) / 1000.0)))


class InMemoryRateLimiter(AbstractRateLimiter):
    """Shared plumbing for the in-memory window strategies.

    Subclasses implement ``_new_record``, ``_decide`` and ``_lockout_until``;
    this class owns configuration checks, key fallback, the store, penalties
    and sweeping.
    """

    strategy = "base"

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        escalation: EscalationPolicy | None = None,
        clock: Callable[[], float] = wall_clock_ms,
        store: WindowStore | None = None,
        fallback_key: str = UNKNOWN_CLIENT_KEY,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum admitted requests per window.
            window_ms: Window duration in milliseconds.
            escalation: Optional penalty growth for repeat offenders.
            clock: Time source returning milliseconds.
            store: Record store; a private one is created when omitted.
            fallback_key: Bucket shared by requests without an identifier.

        Raises:
            ConfigurationError: If limit or window_ms are not positive.
        """
        if limit <= 0:
            raise ConfigurationError(
                code="invalid_rate_limit",
                message="max requests per window must be > 0",
                details={"actual_value": limit},
            )
        if window_ms <= 0:
            raise ConfigurationError(
                code="invalid_rate_limit_window",
                message="window duration must be > 0 ms",
                details={"actual_value": window_ms},
            )

        self._limit = limit
        self._window_ms = window_ms
        self._escalation = escalation
        self._clock = clock
        self._store = store if store is not None else WindowStore()
        self._fallback_key = fallback_key or UNKNOWN_CLIENT_KEY

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def escalation(self) -> EscalationPolicy | None:
        return self._escalation

    @property
    def store(self) -> WindowStore:
        return self._store

    def _resolve(self, key: str, now: float | None) -> tuple[str, float]:
        return (key or self._fallback_key), (self._clock() if now is None else now)

    def _admitted(self, record: WindowRecord) -> RateLimitDecision:
        return RateLimitDecision(
            admitted=True,
            retry_after_seconds=0,
            limit=self._limit,
            remaining=max(0, self._limit - record.count),
            reset_at_ms=record.reset_at,
        )

    def _rejected(self, deadline_ms: float, now: float) -> RateLimitDecision:
        return RateLimitDecision(
            admitted=False,
            retry_after_seconds=_retry_after_seconds(deadline_ms, now),
            limit=self._limit,
            remaining=0,
            reset_at_ms=deadline_ms,
        )

    def _penalty_ms(self, violations: int) -> float | None:
        """Escalated lockout length, or None when the current window stands.

        The first violation serves out whatever window is already in force.
        """
        if self._escalation is None or violations <= 1:
            return None
        return self._escalation.penalty_ms(self._window_ms, violations)

    @abstractmethod
    def _new_record(self, now: float) -> WindowRecord:
        """Build the record for a client's first admitted request."""

    @abstractmethod
    def _decide(self, record: WindowRecord, now: float) -> RateLimitDecision:
        """Admit or reject against a live record, mutating it in place."""

    @abstractmethod
    def _lockout_until(self, record: WindowRecord) -> float:
        """Deadline of the lockout a live record enforces, 0 when none."""

    def check(self, key: str, now: float | None = None) -> RateLimitDecision:
        key, now = self._resolve(key, now)

        with self._store.locked() as store:
            record = store.get(key)
            if record is None or record.is_expired(now):
                record = self._new_record(now)
                store.put(key, record)
                return self._admitted(record)
            return self._decide(record, now)

    def penalize(self, key: str, retry_after_seconds: int, now: float | None = None) -> RateLimitDecision:
        """Force a lockout of ``retry_after_seconds`` for the client.

        A lockout already in force is never shortened. The violation streak
        starts over, so the first rejection after a penalty serves out the
        penalty instead of escalating it. Non-positive delays are clamped to
        one second so the next check is still rejected.
        """
        key, now = self._resolve(key, now)
        delay_ms = max(1, int(retry_after_seconds)) * 1000.0
        deadline = now + delay_ms

        with self._store.locked() as store:
            previous = store.get(key)
            live = previous is not None and not previous.is_expired(now)
            if live:
                deadline = max(deadline, self._lockout_until(previous))

            record = WindowRecord(
                count=self._limit + 1,
                window_start=now,
                reset_at=deadline,
                blocked_until=deadline,
            )
            if live and previous.hits:
                record.hits = previous.hits
                # Keep counted hits alive until they leave the window.
                record.reset_at = max(record.reset_at, record.hits[-1] + self._window_ms)
            store.put(key, record)

        logger.info(
            "rate_limit.penalized",
            extra={
                "key_hash": hash_identifier(key),
                "strategy": self.strategy,
                "retry_after_s": int(delay_ms // 1000),
                "lockout_s": _retry_after_seconds(deadline, now),
            },
        )
        return self._rejected(deadline, now)

    def sweep(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        return self._store.remove_expired(now)


class InMemoryFixedWindowRateLimiter(InMemoryRateLimiter):
    """Rate limiter using a fixed time window per client.

    A window opens on the client's first request after the previous one
    expired and resets wholesale at ``window_start + window_ms``. Across a
    boundary a client may therefore get up to ``2 * limit`` requests in a
    short span; use the sliding strategy when that matters.
    """

    strategy = "fixed"

    def _new_record(self, now: float) -> WindowRecord:
        return WindowRecord(count=1, window_start=now, reset_at=now + self._window_ms)

    def _lockout_until(self, record: WindowRecord) -> float:
        # A full window locks the client out until it resets.
        return record.reset_at if record.count >= self._limit else 0.0

    def _decide(self, record: WindowRecord, now: float) -> RateLimitDecision:
        if record.count < self._limit:
            record.count += 1
            return self._admitted(record)

        record.violations += 1
        penalty_ms = self._penalty_ms(record.violations)
        if penalty_ms is not None:
            record.reset_at = max(record.reset_at, record.window_start + penalty_ms)
        return self._rejected(record.reset_at, now)


class InMemorySlidingWindowRateLimiter(InMemoryRateLimiter):
    """Rate limiter counting admitted requests in the trailing window.

    Never admits more than ``limit`` requests in any span of ``window_ms``.
    The record expires once its newest hit has left the window and no
    lockout is pending.
    """

    strategy = "sliding"

    def _new_record(self, now: float) -> WindowRecord:
        record = WindowRecord(count=1, window_start=now, reset_at=now + self._window_ms)
        record.hits.append(now)
        return record

    def _lockout_until(self, record: WindowRecord) -> float:
        return record.blocked_until

    def _decide(self, record: WindowRecord, now: float) -> RateLimitDecision:
        cutoff = now - self._window_ms
        while record.hits and record.hits[0] <= cutoff:
            record.hits.popleft()
        record.count = len(record.hits)
        if record.hits:
            record.window_start = record.hits[0]

        if now >= record.blocked_until and record.count < self._limit:
            record.hits.append(now)
            record.count += 1
            record.violations = 0
            record.window_start = record.hits[0]
            record.reset_at = max(record.reset_at, now + self._window_ms)
            return self._admitted(record)

        record.violations += 1
        slot_free_at = record.hits[0] + self._window_ms if record.count >= self._limit else now
        penalty_ms = self._penalty_ms(record.violations)
        if penalty_ms is not None:
            record.blocked_until = max(record.blocked_until, record.window_start + penalty_ms)

        deadline = max(slot_free_at, record.blocked_until)
        record.reset_at = max(record.reset_at, deadline)
        return self._rejected(deadline, now)
