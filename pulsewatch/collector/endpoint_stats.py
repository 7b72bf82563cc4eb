"""Per-endpoint request statistics for the HTTP surface."""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass
class _EndpointAggregate:
    count: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0
    errors: int = 0


class EndpointStats:
    """Aggregates count, latency bounds and error rate per ``METHOD:path``.

    Responses with a status code of 400 or above count as errors.
    """

    def __init__(self) -> None:
        self._by_key: dict[str, _EndpointAggregate] = {}
        self._lock = threading.Lock()

    def record_request(self, endpoint: str, method: str, duration_ms: float, status_code: int) -> None:
        key = f"{method.upper()}:{endpoint}"
        with self._lock:
            agg = self._by_key.setdefault(key, _EndpointAggregate())
            agg.count += 1
            agg.total_time += duration_ms
            agg.min_time = min(agg.min_time, duration_ms)
            agg.max_time = max(agg.max_time, duration_ms)
            if status_code >= 400:
                agg.errors += 1

    def summary(self) -> dict[str, dict[str, float]]:
        with self._lock:
            items = [(key, _EndpointAggregate(**vars(agg))) for key, agg in self._by_key.items()]
        return {
            key: {
                "count": agg.count,
                "average_time": agg.total_time / agg.count,
                "min_time": 0.0 if agg.min_time == float("inf") else agg.min_time,
                "max_time": agg.max_time,
                "error_rate": agg.errors / agg.count,
            }
            for key, agg in items
        }

    def clear(self) -> None:
        with self._lock:
            self._by_key.clear()
