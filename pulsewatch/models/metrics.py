"""Metric sample and stats snapshot data structures."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum


class MetricUnit(StrEnum):
    """Units understood by producers. Any other string is stored as-is."""

    MS = "ms"
    BYTES = "bytes"
    COUNT = "count"


# Sample names the snapshot aggregation understands.
REQUEST_DURATION = "request_duration"
REQUEST_ERROR = "request_error"
MEMORY_USAGE = "memory_usage"
CPU_USAGE = "cpu_usage"
DATABASE_ERROR = "database_error"
BACKUP_RUN = "backup_run"


@dataclass(frozen=True)
class MetricSample:
    """A single raw measurement. Immutable once recorded."""

    name: str
    value: float
    unit: str
    timestamp: datetime
    tags: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "timestamp": self.timestamp.isoformat(),
            "tags": dict(self.tags),
        }


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time aggregate over the collector's sample window.

    Recomputed on every evaluation tick; never stored by the collector.
    ``memory_usage`` and ``cpu_usage`` are ratios in ``[0, 1]``.
    """

    total_requests: int
    average_response_time: float
    p95_response_time: float
    p99_response_time: float
    error_rate: float
    throughput: float
    memory_usage: float
    cpu_usage: float
    timestamp: datetime
    database_errors: int = 0
    backup_status: str = "unknown"

    @classmethod
    def empty(cls, timestamp: datetime) -> StatsSnapshot:
        return cls(
            total_requests=0,
            average_response_time=0.0,
            p95_response_time=0.0,
            p99_response_time=0.0,
            error_rate=0.0,
            throughput=0.0,
            memory_usage=0.0,
            cpu_usage=0.0,
            timestamp=timestamp,
        )

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data
