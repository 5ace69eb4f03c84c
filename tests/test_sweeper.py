"""Tests for the background expiry sweeper."""

import asyncio
from unittest.mock import Mock

import pytest

from homework_api.adapters.rate_limit import ExpirySweeper, InMemoryFixedWindowRateLimiter


def test_run_once_removes_expired_records() -> None:
    clock = Mock(return_value=0.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_ms=1_000, clock=clock)
    limiter.check("a")
    limiter.check("b")

    clock.return_value = 1_000.0
    sweeper = ExpirySweeper(limiter, interval_seconds=1)

    assert sweeper.run_once() == 2
    assert len(limiter.store) == 0


def test_invalid_interval() -> None:
    with pytest.raises(ValueError):
        ExpirySweeper(Mock(), interval_seconds=0)


@pytest.mark.asyncio
async def test_background_loop_sweeps_periodically() -> None:
    limiter = Mock()
    limiter.sweep.return_value = 0
    sweeper = ExpirySweeper(limiter, interval_seconds=0.01)

    await sweeper.start()
    assert sweeper.running is True
    await asyncio.sleep(0.05)
    await sweeper.stop()

    assert limiter.sweep.call_count >= 2
    assert sweeper.running is False


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent() -> None:
    limiter = Mock()
    limiter.sweep.return_value = 0
    sweeper = ExpirySweeper(limiter, interval_seconds=10)

    await sweeper.start()
    first_task = sweeper._task
    await sweeper.start()
    assert sweeper._task is first_task

    await sweeper.stop()
    await sweeper.stop()
    assert sweeper.running is False


@pytest.mark.asyncio
async def test_loop_survives_sweep_errors() -> None:
    limiter = Mock()
    limiter.sweep.side_effect = [RuntimeError("boom"), 0, 0, 0, 0, 0, 0, 0, 0, 0]
    sweeper = ExpirySweeper(limiter, interval_seconds=0.01)

    await sweeper.start()
    await asyncio.sleep(0.05)
    assert sweeper.running is True
    await sweeper.stop()

    assert limiter.sweep.call_count >= 2
