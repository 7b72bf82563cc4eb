"""Bounded in-memory metrics collector.

Producers (HTTP middleware, resource gauges, timing helpers) call
``record()`` from any thread or task. The evaluator calls ``snapshot()``
once per tick. The buffer is a ``deque`` ring with a fixed capacity; the
lock covers only the append and the copy, and every aggregation runs on
the private copy.
"""

from __future__ import annotations

import math
import threading
from collections import deque
from collections.abc import Mapping
from datetime import datetime

import structlog

from pulsewatch.clock import Clock, SystemClock
from pulsewatch.models.metrics import (
    BACKUP_RUN,
    CPU_USAGE,
    DATABASE_ERROR,
    MEMORY_USAGE,
    REQUEST_DURATION,
    REQUEST_ERROR,
    MetricSample,
    MetricUnit,
    StatsSnapshot,
)

_log = structlog.get_logger(component="collector")

DEFAULT_CAPACITY = 10_000


class MetricsCollector:
    """Ring buffer of MetricSamples plus snapshot aggregation.

    Args:
        capacity: Maximum number of retained samples. Oldest are evicted.
        clock:    Wall-clock source for sample timestamps and throughput.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, clock: Clock | None = None) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._clock = clock or SystemClock()
        self._samples: deque[MetricSample] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._samples)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def record(
        self,
        name: str,
        value: float,
        unit: str = MetricUnit.MS,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """Append one sample. Never raises.

        Non-numeric and non-finite values are dropped; unknown units are
        kept verbatim.
        """
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            _log.debug("sample_dropped", name=name, reason="non-numeric value")
            return
        if not math.isfinite(numeric):
            _log.debug("sample_dropped", name=name, reason="non-finite value")
            return
        sample = MetricSample(
            name=str(name),
            value=numeric,
            unit=str(unit),
            timestamp=self._clock.now(),
            tags=_clean_tags(tags),
        )
        with self._lock:
            self._samples.append(sample)

    def record_request(
        self,
        duration_ms: float,
        *,
        endpoint: str = "",
        method: str = "",
        status_code: int = 200,
        error: BaseException | None = None,
    ) -> None:
        """Record one handled request.

        A 5xx status or an *error* also records one ``request_error``.
        """
        tags = {"endpoint": endpoint, "method": method, "status": str(status_code)}
        self.record(REQUEST_DURATION, duration_ms, MetricUnit.MS, tags)
        if error is not None:
            self.record_error(error, context=f"{method} {endpoint}".strip())
        elif status_code >= 500:
            self.record(REQUEST_ERROR, 1, MetricUnit.COUNT, tags)

    def record_error(self, error: BaseException, context: str = "unknown") -> None:
        self.record(
            REQUEST_ERROR,
            1,
            MetricUnit.COUNT,
            {"error": type(error).__name__, "message": str(error)[:200], "context": context},
        )

    def record_gauge(
        self,
        name: str,
        value: float,
        unit: str = "ratio",
        tags: Mapping[str, str] | None = None,
    ) -> None:
        self.record(name, value, unit, tags)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def samples(self) -> list[MetricSample]:
        """Copy of the current window, oldest first."""
        with self._lock:
            return list(self._samples)

    def samples_by_name(self, name: str) -> list[MetricSample]:
        return [s for s in self.samples() if s.name == name]

    def samples_in_range(self, start: datetime, end: datetime) -> list[MetricSample]:
        return [s for s in self.samples() if start <= s.timestamp <= end]

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def snapshot(self) -> StatsSnapshot:
        """Aggregate the current window into a StatsSnapshot.

        Every division is guarded; an empty window yields zeroed fields.
        """
        window = self.samples()
        now = self._clock.now()
        if not window:
            return StatsSnapshot.empty(now)

        durations: list[float] = []
        errors = 0
        database_errors = 0
        memory_usage = 0.0
        cpu_usage = 0.0
        backup_status = "unknown"
        for sample in window:
            if sample.name == REQUEST_DURATION:
                durations.append(sample.value)
            elif sample.name == REQUEST_ERROR:
                errors += 1
            elif sample.name == DATABASE_ERROR:
                database_errors += 1
            elif sample.name == MEMORY_USAGE:
                memory_usage = sample.value
            elif sample.name == CPU_USAGE:
                cpu_usage = sample.value
            elif sample.name == BACKUP_RUN:
                backup_status = sample.tags.get("status", backup_status)

        total = len(durations)
        if total:
            average = sum(durations) / total
            ordered = sorted(durations)
            p95 = ordered[int(total * 0.95)]
            p99 = ordered[int(total * 0.99)]
            elapsed = (now - window[0].timestamp).total_seconds()
            throughput = total / max(elapsed, 1.0)
            error_rate = errors / total
        else:
            average = p95 = p99 = throughput = error_rate = 0.0

        return StatsSnapshot(
            total_requests=total,
            average_response_time=average,
            p95_response_time=p95,
            p99_response_time=p99,
            error_rate=error_rate,
            throughput=throughput,
            memory_usage=memory_usage,
            cpu_usage=cpu_usage,
            timestamp=now,
            database_errors=database_errors,
            backup_status=backup_status,
        )

    def export(self) -> dict[str, object]:
        """JSON-ready dump of the window and its snapshot."""
        window = self.samples()
        return {
            "capacity": self._capacity,
            "samples": [s.to_dict() for s in window],
            "stats": self.snapshot().to_dict(),
        }


def _clean_tags(tags: Mapping[str, str] | None) -> dict[str, str]:
    if not isinstance(tags, Mapping):
        return {}
    return {str(k): str(v) for k, v in tags.items()}
