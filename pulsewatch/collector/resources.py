"""Host resource gauges sampled with psutil."""

from __future__ import annotations

import psutil
import structlog

from pulsewatch.collector.metrics_collector import MetricsCollector
from pulsewatch.models.metrics import CPU_USAGE, MEMORY_USAGE, MetricUnit
from pulsewatch.scheduler import Ticker

_log = structlog.get_logger(component="collector.resources")


class ResourceGaugeSampler:
    """Records ``memory_usage`` and ``cpu_usage`` ratio gauges periodically.

    CPU utilisation is measured since the previous sample (psutil's
    non-blocking mode), so the first reading after start may be 0.
    """

    def __init__(self, collector: MetricsCollector, interval_seconds: float = 30.0) -> None:
        self._collector = collector
        self._ticker = Ticker("resource-gauges", interval_seconds, self._tick, run_immediately=True)

    def sample_once(self) -> None:
        memory = psutil.virtual_memory()
        self._collector.record_gauge(MEMORY_USAGE, memory.percent / 100.0)
        self._collector.record_gauge("memory_used", float(memory.used), MetricUnit.BYTES)
        self._collector.record_gauge(CPU_USAGE, psutil.cpu_percent(interval=None) / 100.0)

    async def _tick(self) -> None:
        self.sample_once()

    def start(self) -> None:
        self._ticker.start()
        _log.info("resource_gauges_started", interval=self._ticker.interval_seconds)

    async def stop(self) -> None:
        await self._ticker.stop()
