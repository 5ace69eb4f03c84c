"""Unit tests for the in-memory sliding-window rate limiter."""

from unittest.mock import Mock

from homework_api.adapters.rate_limit import EscalationPolicy, InMemorySlidingWindowRateLimiter


def make_limiter(limit: int = 2, window_ms: int = 10_000, escalation=None) -> InMemorySlidingWindowRateLimiter:
    return InMemorySlidingWindowRateLimiter(
        limit=limit,
        window_ms=window_ms,
        escalation=escalation,
        clock=Mock(return_value=0.0),
    )


def test_allows_up_to_limit_then_blocks() -> None:
    limiter = make_limiter(limit=3)

    assert all(limiter.check("k", now=t).admitted for t in (0, 1, 2))
    blocked = limiter.check("k", now=3)

    assert blocked.admitted is False
    assert blocked.retry_after_seconds == 10


def test_no_burst_across_window_boundary() -> None:
    limiter = make_limiter(limit=2, window_ms=10_000)

    assert limiter.check("k", now=8_000).admitted is True
    assert limiter.check("k", now=9_000).admitted is True
    # A fixed window opened at 0 would reset here; the trailing window does not.
    assert limiter.check("k", now=10_500).admitted is False


def test_slot_frees_when_oldest_hit_leaves_window() -> None:
    limiter = make_limiter(limit=2, window_ms=10_000)
    limiter.check("k", now=0)
    limiter.check("k", now=4_000)

    blocked = limiter.check("k", now=6_000)
    assert blocked.reset_at_ms == 10_000
    assert blocked.retry_after_seconds == 4

    assert limiter.check("k", now=10_000).admitted is True
    assert limiter.check("k", now=10_001).admitted is False


def test_isolated_by_key() -> None:
    limiter = make_limiter(limit=1)

    assert limiter.check("a", now=0).admitted is True
    assert limiter.check("a", now=1).admitted is False
    assert limiter.check("b", now=1).admitted is True


def test_record_expires_after_last_hit_leaves_window() -> None:
    limiter = make_limiter(limit=2, window_ms=10_000)
    limiter.check("k", now=0)
    limiter.check("k", now=5_000)

    assert limiter.sweep(now=14_999) == 0
    assert limiter.sweep(now=15_000) == 1
    assert "k" not in limiter.store


def test_penalize_then_check_rejects_for_upstream_delay() -> None:
    limiter = make_limiter(limit=5, escalation=EscalationPolicy())
    limiter.check("k", now=0)

    limiter.penalize("k", 30, now=1_000)
    decision = limiter.check("k", now=1_000)

    assert decision.admitted is False
    assert decision.retry_after_seconds == 30
    assert limiter.check("k", now=31_000).admitted is True


def test_escalation_extends_lockout_for_repeat_offenders() -> None:
    limiter = make_limiter(limit=1, window_ms=10_000, escalation=EscalationPolicy(multiplier=2, cap_factor=16))
    limiter.check("k", now=0)

    first = limiter.check("k", now=1)
    second = limiter.check("k", now=2)
    third = limiter.check("k", now=3)

    assert first.reset_at_ms == 10_000
    assert second.reset_at_ms == 20_000
    assert third.reset_at_ms == 40_000
    assert limiter.check("k", now=15_000).admitted is False


def test_admission_resets_consecutive_violations() -> None:
    limiter = make_limiter(limit=1, window_ms=10_000, escalation=EscalationPolicy(multiplier=2, cap_factor=16))
    limiter.check("k", now=0)
    limiter.check("k", now=1)

    assert limiter.check("k", now=10_000).admitted is True
    assert limiter.store.get("k").violations == 0


def test_penalize_never_shortens_escalated_lockout() -> None:
    limiter = make_limiter(limit=1, window_ms=10_000, escalation=EscalationPolicy(multiplier=2, cap_factor=16))
    limiter.check("k", now=0)
    for t in (1, 2, 3):
        escalated = limiter.check("k", now=t)
    assert escalated.reset_at_ms == 40_000

    decision = limiter.penalize("k", 5, now=10)

    assert decision.reset_at_ms == 40_000
    assert limiter.store.get("k").blocked_until == 40_000
    assert limiter.check("k", now=5_010).admitted is False
    assert limiter.check("k", now=39_999).admitted is False
    assert limiter.check("k", now=40_000).admitted is True


def test_local_rejection_before_penalize_does_not_escalate() -> None:
    limiter = make_limiter(limit=2, window_ms=10_000, escalation=EscalationPolicy(multiplier=2, cap_factor=16))
    limiter.check("k", now=0)
    limiter.check("k", now=1)
    assert limiter.check("k", now=2).admitted is False

    limiter.penalize("k", 30, now=3)
    decision = limiter.check("k", now=3)

    assert decision.admitted is False
    assert decision.retry_after_seconds == 30
    assert limiter.store.get("k").violations == 1
