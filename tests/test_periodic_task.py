"""Tests for the periodic background task helper."""

import asyncio

import pytest

from app.utils.periodic import PeriodicTask


@pytest.mark.asyncio
async def test_runs_callback_repeatedly_until_stopped():
    calls: list[int] = []
    task = PeriodicTask(name="test", interval_seconds=0.01, callback=lambda: calls.append(1))

    task.start()
    assert task.is_running
    await asyncio.sleep(0.08)
    await task.stop()

    assert not task.is_running
    seen = len(calls)
    assert seen >= 2

    await asyncio.sleep(0.03)
    assert len(calls) == seen


@pytest.mark.asyncio
async def test_failing_callback_keeps_schedule():
    calls: list[int] = []

    def _flaky() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    task = PeriodicTask(name="flaky", interval_seconds=0.01, callback=_flaky)
    task.start()
    await asyncio.sleep(0.08)
    await task.stop()

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_stop_without_start_is_noop():
    task = PeriodicTask(name="idle", interval_seconds=1, callback=lambda: None)

    await task.stop()

    assert not task.is_running


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        PeriodicTask(name="bad", interval_seconds=0, callback=lambda: None)
