"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so
the window strategy can be chosen by configuration, and a shared store
could be added later without touching the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of an admission check.

    Attributes:
        admitted: Whether the request may proceed to the upstream call.
        retry_after_seconds: 0 when admitted, otherwise a positive delay.
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when blocked).
        reset_at_ms: Timestamp (ms) at which the client's current window or
            lockout ends.
    """

    admitted: bool
    retry_after_seconds: int
    limit: int
    remaining: int
    reset_at_ms: float


class AbstractRateLimiter(ABC):
    """Interface for keyed admission control."""

    @property
    @abstractmethod
    def limit(self) -> int:
        """Maximum admitted requests per window."""

    @abstractmethod
    def check(self, key: str, now: float | None = None) -> RateLimitDecision:
        """Decide admission for one request and record it when admitted.

        Args:
            key: Client identifier. Empty keys share the fallback bucket.
            now: Timestamp in milliseconds; defaults to the limiter clock.

        Returns:
            RateLimitDecision for this request.
        """
        raise NotImplementedError

    @abstractmethod
    def penalize(self, key: str, retry_after_seconds: int, now: float | None = None) -> RateLimitDecision:
        """Lock a client out after an upstream rate-limit signal.

        Args:
            key: Client identifier.
            retry_after_seconds: Delay reported by the upstream service.
            now: Timestamp in milliseconds; defaults to the limiter clock.

        Returns:
            The rejection the client will see on its next check.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: float | None = None) -> int:
        """Drop expired records to reclaim memory.

        Returns:
            Number of records removed.
        """
        raise NotImplementedError
