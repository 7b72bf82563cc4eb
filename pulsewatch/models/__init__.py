"""Core data structures for PulseWatch."""

from pulsewatch.models.alerts import Alert, AlertState, AlertStats
from pulsewatch.models.config import PulseWatchConfig
from pulsewatch.models.metrics import MetricSample, MetricUnit, StatsSnapshot
from pulsewatch.models.rules import (
    AlertRule,
    AlertSeverity,
    Channel,
    Comparator,
    PredicateCondition,
    RuleCondition,
    ThresholdCondition,
)

__all__ = [
    "Alert",
    "AlertRule",
    "AlertSeverity",
    "AlertState",
    "AlertStats",
    "Channel",
    "Comparator",
    "MetricSample",
    "MetricUnit",
    "PredicateCondition",
    "PulseWatchConfig",
    "RuleCondition",
    "StatsSnapshot",
    "ThresholdCondition",
]
