"""Metric ingestion for PulseWatch.

Submodules
----------
metrics_collector -- MetricsCollector: bounded ring buffer and snapshot aggregation.
endpoint_stats    -- EndpointStats: per ``METHOD:path`` request statistics.
timing            -- ``timed`` context manager and ``measure`` decorator.
resources         -- ResourceGaugeSampler: psutil memory/CPU gauges.
"""

from pulsewatch.collector.endpoint_stats import EndpointStats
from pulsewatch.collector.metrics_collector import MetricsCollector

__all__ = ["EndpointStats", "MetricsCollector"]
