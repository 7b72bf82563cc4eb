"""In-memory alert store: owns the open -> resolved lifecycle."""

from __future__ import annotations

import dataclasses
import itertools
from collections import Counter

import structlog

from pulsewatch.clock import Clock, SystemClock
from pulsewatch.models.alerts import Alert, AlertStats
from pulsewatch.models.metrics import StatsSnapshot
from pulsewatch.models.rules import AlertRule
from pulsewatch.observability.metrics import alerts_resolved_total
from pulsewatch.rules.defaults import render_message

_log = structlog.get_logger(component="alerts.store")


class AlertStore:
    """Keeps every Alert for the lifetime of the process.

    Alerts are never deleted. Durable storage is out of scope; a restart
    starts from an empty store.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._alerts: dict[str, Alert] = {}
        # creation sequence; breaks ties between equal triggered_at values
        self._seq: dict[str, int] = {}
        self._counter = itertools.count()

    def create(self, rule: AlertRule, snapshot: StatsSnapshot) -> Alert:
        alert = Alert(
            rule_id=rule.id,
            message=render_message(rule, snapshot),
            severity=rule.severity,
            triggered_at=self._clock.now(),
            metadata=snapshot,
        )
        self._alerts[alert.id] = alert
        self._seq[alert.id] = next(self._counter)
        _log.info(
            "alert_created",
            alert_id=alert.id,
            rule_id=rule.id,
            severity=alert.severity.value,
            message=alert.message,
        )
        return alert

    def resolve(self, alert_id: str) -> Alert | None:
        """Mark an alert resolved. Idempotent.

        Returns the alert (resolved) or None for an unknown id. Resolving an
        already-resolved alert returns it unchanged, keeping the original
        ``resolved_at``.
        """
        alert = self._alerts.get(alert_id)
        if alert is None:
            return None
        if alert.resolved:
            return alert
        resolved = dataclasses.replace(alert, resolved=True, resolved_at=self._clock.now())
        self._alerts[alert_id] = resolved
        alerts_resolved_total.inc()
        _log.info("alert_resolved", alert_id=alert_id, rule_id=alert.rule_id)
        return resolved

    def get(self, alert_id: str) -> Alert | None:
        return self._alerts.get(alert_id)

    def list(self) -> list[Alert]:
        """All alerts, newest first."""
        return sorted(
            self._alerts.values(),
            key=lambda a: (a.triggered_at, self._seq[a.id]),
            reverse=True,
        )

    def list_active(self) -> list[Alert]:
        return [alert for alert in self.list() if not alert.resolved]

    def stats(self) -> AlertStats:
        alerts = list(self._alerts.values())
        by_severity = Counter(alert.severity.value for alert in alerts)
        durations = [
            (alert.resolved_at - alert.triggered_at).total_seconds()
            for alert in alerts
            if alert.resolved and alert.resolved_at is not None
        ]
        return AlertStats(
            total_alerts=len(alerts),
            active_alerts=sum(1 for alert in alerts if not alert.resolved),
            alerts_by_severity=dict(by_severity),
            average_resolution_time=sum(durations) / len(durations) if durations else 0.0,
        )

    def __len__(self) -> int:
        return len(self._alerts)
