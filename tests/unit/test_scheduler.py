"""Tests for the fixed-rate Ticker."""

from __future__ import annotations

import asyncio

import pytest

from pulsewatch.scheduler import Ticker


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class TestTicker:
    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            Ticker("t", 0, lambda: asyncio.sleep(0))

    def test_start_outside_loop_raises(self) -> None:
        ticker = Ticker("t", 1, lambda: asyncio.sleep(0))
        with pytest.raises(RuntimeError):
            ticker.start()

    async def test_runs_repeatedly_until_stopped(self) -> None:
        calls = 0

        async def callback() -> None:
            nonlocal calls
            calls += 1

        ticker = Ticker("t", 0.01, callback)
        ticker.start()
        assert ticker.running
        await _wait_for(lambda: calls >= 3)
        await ticker.stop()
        assert not ticker.running
        seen = calls
        await asyncio.sleep(0.05)
        assert calls == seen

    async def test_run_immediately(self) -> None:
        calls = 0

        async def callback() -> None:
            nonlocal calls
            calls += 1

        ticker = Ticker("t", 60, callback, run_immediately=True)
        ticker.start()
        await _wait_for(lambda: calls == 1)
        await ticker.stop()

    async def test_callback_error_does_not_stop_loop(self) -> None:
        calls = 0

        async def callback() -> None:
            nonlocal calls
            calls += 1
            raise RuntimeError("boom")

        ticker = Ticker("t", 0.01, callback)
        ticker.start()
        await _wait_for(lambda: calls >= 2)
        assert ticker.running
        await ticker.stop()

    async def test_overrun_skips_missed_due_times(self) -> None:
        calls = 0

        async def slow() -> None:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.05)

        ticker = Ticker("t", 0.01, slow, run_immediately=True)
        ticker.start()
        await _wait_for(lambda: ticker.skipped > 0)
        await ticker.stop()
        # a 50ms callback on a 10ms period can run at most once per 50ms
        assert calls <= 3

    async def test_start_twice_and_stop_twice_are_safe(self) -> None:
        ticker = Ticker("t", 60, lambda: asyncio.sleep(0))
        ticker.start()
        first = ticker._task
        ticker.start()
        assert ticker._task is first
        await ticker.stop()
        await ticker.stop()
        assert not ticker.running
