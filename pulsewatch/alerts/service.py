"""Alerting service: the operator-facing facade over the engine.

Composes an explicit set of collaborators instead of holding global state,
so tests can build as many isolated instances as they need.
"""

from __future__ import annotations

import structlog

from pulsewatch.alerts.evaluator import AlertEvaluator
from pulsewatch.alerts.health import compute_health_score
from pulsewatch.alerts.store import AlertStore
from pulsewatch.collector.metrics_collector import MetricsCollector
from pulsewatch.models.alerts import Alert, AlertStats
from pulsewatch.models.metrics import StatsSnapshot
from pulsewatch.models.rules import AlertRule
from pulsewatch.notifications.manager import NotificationDispatcher
from pulsewatch.rules.registry import RuleRegistry

_log = structlog.get_logger(component="alerts.service")


class AlertingService:
    """Query and control surface consumed by the REST API and dashboards.

    Args:
        collector:          Metrics source.
        registry:           Rule registry shared with the evaluator.
        store:              Alert store shared with the evaluator.
        evaluator:          Recurring rule evaluator.
        dispatcher:         Notification fan-out; drained on stop.
        monitoring_enabled: When False, ``start_monitoring()`` does nothing.
    """

    def __init__(
        self,
        collector: MetricsCollector,
        registry: RuleRegistry,
        store: AlertStore,
        evaluator: AlertEvaluator,
        dispatcher: NotificationDispatcher,
        monitoring_enabled: bool = True,
    ) -> None:
        self.collector = collector
        self.registry = registry
        self.store = store
        self.evaluator = evaluator
        self.dispatcher = dispatcher
        self._monitoring_enabled = monitoring_enabled

    # --- monitoring lifecycle -------------------------------------------

    @property
    def monitoring(self) -> bool:
        return self.evaluator.running

    def start_monitoring(self) -> None:
        """Start periodic evaluation.

        Raises MonitoringStartError when the tick cannot be scheduled; that
        is the only failure surfaced to the caller.
        """
        if not self._monitoring_enabled:
            _log.info("monitoring_disabled_by_config")
            return
        self.evaluator.start()

    async def stop_monitoring(self) -> None:
        """Stop periodic evaluation. Safe to call repeatedly."""
        await self.evaluator.stop()

    async def stop(self) -> None:
        await self.stop_monitoring()
        await self.dispatcher.drain()

    async def evaluate_now(self) -> list[Alert]:
        return await self.evaluator.tick()

    # --- alerts ---------------------------------------------------------

    def list_alerts(self) -> list[Alert]:
        return self.store.list()

    def list_active_alerts(self) -> list[Alert]:
        return self.store.list_active()

    def get_alert(self, alert_id: str) -> Alert | None:
        return self.store.get(alert_id)

    def resolve_alert(self, alert_id: str) -> Alert | None:
        return self.store.resolve(alert_id)

    def get_stats(self) -> AlertStats:
        return self.store.stats()

    # --- rules ----------------------------------------------------------

    def list_rules(self) -> list[AlertRule]:
        return self.registry.list_rules()

    def get_rule(self, rule_id: str) -> AlertRule | None:
        return self.registry.get_rule(rule_id)

    def add_rule(self, rule: AlertRule) -> None:
        self.registry.add_rule(rule)

    def remove_rule(self, rule_id: str) -> bool:
        removed = self.registry.remove_rule(rule_id)
        if removed:
            self.evaluator.forget(rule_id)
        return removed

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> bool:
        return self.registry.set_enabled(rule_id, enabled)

    def cooldown_remaining(self, rule_id: str) -> float:
        return self.evaluator.cooldown_remaining(rule_id)

    # --- metrics --------------------------------------------------------

    def snapshot(self) -> StatsSnapshot:
        return self.collector.snapshot()

    def health_score(self, snapshot: StatsSnapshot | None = None) -> int:
        return compute_health_score(snapshot or self.snapshot(), self.get_stats())
