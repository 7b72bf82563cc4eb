"""Alert evaluator: the recurring tick that turns snapshots into alerts.

Each tick pulls one StatsSnapshot, walks the enabled rules in registration
order, skips rules still inside their cooldown, evaluates the rest, and for
every rule that fires creates an Alert and hands it to the dispatcher
without awaiting delivery.

Cooldowns are measured from the rule's last trigger on the monotonic
clock, never from resolution. State is per process: several evaluating
processes will each fire their own alerts.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol

import structlog

from pulsewatch.alerts.store import AlertStore
from pulsewatch.clock import Clock, SystemClock
from pulsewatch.models.alerts import Alert
from pulsewatch.models.metrics import StatsSnapshot
from pulsewatch.models.rules import AlertRule, Channel
from pulsewatch.observability.metrics import (
    alerts_triggered_total,
    evaluation_duration_seconds,
    evaluation_ticks_total,
    rule_evaluation_errors_total,
)
from pulsewatch.rules.registry import RuleRegistry
from pulsewatch.scheduler import Ticker

_log = structlog.get_logger(component="alerts.evaluator")

DEFAULT_INTERVAL_SECONDS = 30.0


class SnapshotSource(Protocol):
    def snapshot(self) -> StatsSnapshot: ...


class AlertSink(Protocol):
    def dispatch(self, alert: Alert, channels: frozenset[Channel]) -> object: ...


class MonitoringStartError(RuntimeError):
    """Raised when the recurring evaluation task cannot be scheduled."""


class AlertEvaluator:
    """Checks every enabled rule against a fresh snapshot once per tick.

    Args:
        collector:        Snapshot source (normally a MetricsCollector).
        registry:         Rules to evaluate.
        store:            Where fired alerts are materialized.
        dispatcher:       Receives each new alert; must not block.
        clock:            Monotonic source for cooldown bookkeeping.
        interval_seconds: Tick period for ``start()``.
    """

    def __init__(
        self,
        collector: SnapshotSource,
        registry: RuleRegistry,
        store: AlertStore,
        dispatcher: AlertSink,
        clock: Clock | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._collector = collector
        self._registry = registry
        self._store = store
        self._dispatcher = dispatcher
        self._clock = clock or SystemClock()
        self._ticker = Ticker("alert-evaluator", interval_seconds, self.tick)
        # rule id -> monotonic time of last trigger
        self._last_triggered: dict[str, float] = {}
        self._tick_in_progress = False

    @property
    def running(self) -> bool:
        return self._ticker.running

    @property
    def interval_seconds(self) -> float:
        return self._ticker.interval_seconds

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the recurring tick. No-op when already running.

        Raises MonitoringStartError if the tick task cannot be scheduled.
        """
        if self._ticker.running:
            _log.info("evaluator_already_running")
            return
        try:
            self._ticker.start()
        except RuntimeError as exc:
            raise MonitoringStartError(f"cannot schedule alert evaluation: {exc}") from exc
        _log.info("evaluator_started", interval=self._ticker.interval_seconds)

    async def stop(self) -> None:
        """Cancel the recurring tick. Idempotent.

        Notifications already handed to the dispatcher keep running.
        """
        if not self._ticker.running:
            return
        await self._ticker.stop()
        _log.info("evaluator_stopped")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    async def tick(self) -> list[Alert]:
        """Run one evaluation pass and return the alerts it created.

        A tick requested while another is still running is skipped.
        """
        if self._tick_in_progress:
            evaluation_ticks_total.labels(outcome="skipped").inc()
            _log.warning("evaluation_tick_skipped", reason="previous tick still running")
            return []
        self._tick_in_progress = True
        started = time.perf_counter()
        outcome = "failed"
        try:
            snapshot = await asyncio.to_thread(self._collector.snapshot)
            fired = self._evaluate(snapshot)
            outcome = "completed"
            return fired
        finally:
            self._tick_in_progress = False
            evaluation_duration_seconds.observe(time.perf_counter() - started)
            evaluation_ticks_total.labels(outcome=outcome).inc()

    def _evaluate(self, snapshot: StatsSnapshot) -> list[Alert]:
        fired: list[Alert] = []
        for rule in self._registry.list_enabled():
            if self._in_cooldown(rule):
                continue
            try:
                matched = rule.condition.evaluate(snapshot)
            except Exception as exc:  # noqa: BLE001
                rule_evaluation_errors_total.labels(rule_id=rule.id).inc()
                _log.error("rule_evaluation_error", rule_id=rule.id, error=str(exc))
                continue
            if not matched:
                continue
            alert = self._store.create(rule, snapshot)
            self._last_triggered[rule.id] = self._clock.monotonic()
            alerts_triggered_total.labels(rule_id=rule.id, severity=rule.severity.value).inc()
            self._dispatcher.dispatch(alert, rule.channels)
            fired.append(alert)
        return fired

    def _in_cooldown(self, rule: AlertRule) -> bool:
        last = self._last_triggered.get(rule.id)
        if last is None:
            return False
        return self._clock.monotonic() - last < rule.cooldown_seconds

    def cooldown_remaining(self, rule_id: str) -> float:
        """Seconds until *rule_id* may fire again; 0 when it may fire now."""
        rule = self._registry.get_rule(rule_id)
        last = self._last_triggered.get(rule_id)
        if rule is None or last is None:
            return 0.0
        return max(0.0, rule.cooldown_seconds - (self._clock.monotonic() - last))

    def forget(self, rule_id: str) -> None:
        """Drop cooldown state for a rule that left the registry."""
        self._last_triggered.pop(rule_id, None)
