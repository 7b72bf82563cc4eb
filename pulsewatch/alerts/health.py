"""Overall system health score for the operator surface."""

from __future__ import annotations

from pulsewatch.models.alerts import AlertStats
from pulsewatch.models.metrics import StatsSnapshot

# (threshold, deduction) ladders, checked highest threshold first
_ERROR_RATE_LADDER = ((0.05, 30), (0.02, 15), (0.01, 5))
_RESPONSE_TIME_LADDER = ((2000.0, 25), (1000.0, 10), (500.0, 5))
_MEMORY_LADDER = ((0.9, 20), (0.8, 10), (0.7, 5))
_CPU_LADDER = ((0.8, 15), (0.6, 8), (0.4, 3))

_DATABASE_ERROR_DEDUCTION = 20
_PER_ACTIVE_ALERT_DEDUCTION = 5
_MAX_ACTIVE_ALERT_DEDUCTION = 30


def _ladder(value: float, ladder: tuple[tuple[float, int], ...]) -> int:
    for threshold, deduction in ladder:
        if value > threshold:
            return deduction
    return 0


def compute_health_score(snapshot: StatsSnapshot, stats: AlertStats) -> int:
    """Score in ``[0, 100]``; 100 means no degradation signals at all."""
    score = 100
    score -= _ladder(snapshot.error_rate, _ERROR_RATE_LADDER)
    score -= _ladder(snapshot.average_response_time, _RESPONSE_TIME_LADDER)
    score -= _ladder(snapshot.memory_usage, _MEMORY_LADDER)
    score -= _ladder(snapshot.cpu_usage, _CPU_LADDER)
    if snapshot.database_errors > 0:
        score -= _DATABASE_ERROR_DEDUCTION
    if stats.active_alerts > 0:
        score -= min(stats.active_alerts * _PER_ACTIVE_ALERT_DEDUCTION, _MAX_ACTIVE_ALERT_DEDUCTION)
    return max(0, min(100, score))
