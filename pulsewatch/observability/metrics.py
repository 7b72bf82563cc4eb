"""Prometheus instruments exported by PulseWatch.

All instruments live in the default ``prometheus_client`` registry and are
served by the REST API at ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

notifications_total = Counter(
    "pulsewatch_notifications_total",
    "Alert notification attempts per channel and outcome.",
    ["channel", "success"],
)

alerts_triggered_total = Counter(
    "pulsewatch_alerts_triggered_total",
    "Alerts created by the evaluator.",
    ["rule_id", "severity"],
)

alerts_resolved_total = Counter(
    "pulsewatch_alerts_resolved_total",
    "Alerts transitioned from open to resolved.",
)

rule_evaluation_errors_total = Counter(
    "pulsewatch_rule_evaluation_errors_total",
    "Rule conditions that raised during evaluation.",
    ["rule_id"],
)

evaluation_ticks_total = Counter(
    "pulsewatch_evaluation_ticks_total",
    "Evaluator ticks by outcome (completed, failed, skipped).",
    ["outcome"],
)

evaluation_duration_seconds = Histogram(
    "pulsewatch_evaluation_duration_seconds",
    "Wall time spent in one evaluator tick.",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)
