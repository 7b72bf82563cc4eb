"""Built-in alert rules and their message templates.

The default table is behaviour-defining: ids, thresholds, severities,
channels and cooldowns must not drift.
"""

from __future__ import annotations

from collections.abc import Callable

from pulsewatch.models.metrics import StatsSnapshot
from pulsewatch.models.rules import (
    AlertRule,
    AlertSeverity,
    Channel,
    Comparator,
    ThresholdCondition,
)


def default_rules() -> list[AlertRule]:
    """Fresh copies of the default rule table, in registration order."""
    return [
        AlertRule(
            id="high_error_rate",
            name="High Error Rate",
            condition=ThresholdCondition("error_rate", Comparator.GT, 0.05),
            severity=AlertSeverity.HIGH,
            channels=frozenset({Channel.EMAIL, Channel.PUSH}),
            cooldown_minutes=15,
        ),
        AlertRule(
            id="high_response_time",
            name="High Response Time",
            condition=ThresholdCondition("average_response_time", Comparator.GT, 2000),
            severity=AlertSeverity.MEDIUM,
            channels=frozenset({Channel.EMAIL}),
            cooldown_minutes=30,
        ),
        AlertRule(
            id="low_memory",
            name="Low Memory",
            condition=ThresholdCondition("memory_usage", Comparator.GT, 0.90),
            severity=AlertSeverity.CRITICAL,
            channels=frozenset({Channel.EMAIL, Channel.SMS, Channel.PUSH}),
            cooldown_minutes=5,
        ),
        AlertRule(
            id="high_cpu",
            name="High CPU Usage",
            condition=ThresholdCondition("cpu_usage", Comparator.GT, 0.80),
            severity=AlertSeverity.HIGH,
            channels=frozenset({Channel.EMAIL, Channel.PUSH}),
            cooldown_minutes=10,
        ),
        AlertRule(
            id="database_connection_failed",
            name="Database Connection Failed",
            condition=ThresholdCondition("database_errors", Comparator.GT, 0),
            severity=AlertSeverity.CRITICAL,
            channels=frozenset({Channel.EMAIL, Channel.SMS, Channel.PUSH}),
            cooldown_minutes=0,
        ),
        AlertRule(
            id="backup_failed",
            name="Backup Failed",
            condition=ThresholdCondition("backup_status", Comparator.EQ, "failed"),
            severity=AlertSeverity.HIGH,
            channels=frozenset({Channel.EMAIL, Channel.PUSH}),
            cooldown_minutes=60,
        ),
    ]


_MESSAGE_TEMPLATES: dict[str, Callable[[StatsSnapshot], str]] = {
    "high_error_rate": lambda s: f"Error rate is {s.error_rate * 100:.2f}% (threshold: 5%)",
    "high_response_time": lambda s: (
        f"Average response time is {s.average_response_time:.0f}ms (threshold: 2000ms)"
    ),
    "low_memory": lambda s: f"Memory usage is {s.memory_usage * 100:.2f}% (threshold: 90%)",
    "high_cpu": lambda s: f"CPU usage is {s.cpu_usage * 100:.2f}% (threshold: 80%)",
    "database_connection_failed": lambda s: f"Database connection failed {s.database_errors} times",
    "backup_failed": lambda s: "Backup process failed",
}


def render_message(rule: AlertRule, snapshot: StatsSnapshot) -> str:
    """Render the human-readable alert message for *rule* at *snapshot*."""
    template = _MESSAGE_TEMPLATES.get(rule.id)
    if template is not None:
        detail = template(snapshot)
    elif isinstance(rule.condition, ThresholdCondition):
        cond = rule.condition
        value = getattr(snapshot, cond.field, None)
        shown = f"{value:g}" if isinstance(value, int | float) else str(value)
        detail = f"{cond.field} is {shown} (threshold: {cond.comparator.value} {cond.threshold})"
    else:
        detail = f"Alert condition met for {rule.name}"
    return f"{rule.name}: {detail}"
