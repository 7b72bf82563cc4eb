"""Recurring task abstraction used by the evaluator and the gauge sampler.

A Ticker runs an async callback on a fixed-rate schedule. Due times that
pass while a callback is still running are dropped, not queued, so a slow
callback never causes a burst of back-to-back runs afterwards.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

_log = structlog.get_logger(component="scheduler")


class Ticker:
    """Runs *callback* every *interval_seconds* until stopped.

    Args:
        name:             Task name used in logs.
        interval_seconds: Period between due times. Must be positive.
        callback:         Coroutine function invoked once per due time.
        run_immediately:  Fire once at start instead of waiting one period.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], Awaitable[object]],
        run_immediately: bool = False,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._name = name
        self._interval = interval_seconds
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: asyncio.Task[None] | None = None
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def start(self) -> None:
        """Schedule the loop on the running event loop.

        Raises RuntimeError when called outside a running loop. Calling
        start() on a running ticker is a no-op.
        """
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"ticker-{self._name}")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to unwind. Idempotent."""
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        next_due = time.monotonic() + (0.0 if self._run_immediately else self._interval)
        while True:
            delay = next_due - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                _log.error("ticker_callback_error", ticker=self._name, error=str(exc), exc_info=True)
            next_due += self._interval
            now = time.monotonic()
            if next_due <= now:
                missed = int((now - next_due) // self._interval) + 1
                self.skipped += missed
                next_due += missed * self._interval
                _log.warning("ticker_overrun", ticker=self._name, skipped=missed)
