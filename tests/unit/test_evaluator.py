"""Tests for AlertEvaluator: cooldowns, rule isolation and tick lifecycle."""

from __future__ import annotations

import asyncio
import dataclasses

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from prometheus_client import REGISTRY

from conftest import FakeClock
from pulsewatch.alerts import AlertEvaluator, AlertStore, MonitoringStartError
from pulsewatch.models.alerts import Alert
from pulsewatch.models.metrics import StatsSnapshot
from pulsewatch.models.rules import (
    AlertRule,
    AlertSeverity,
    Channel,
    Comparator,
    PredicateCondition,
    ThresholdCondition,
)
from pulsewatch.rules import RuleRegistry


class FixedSnapshotSource:
    def __init__(self, clock: FakeClock, **fields: object) -> None:
        self._clock = clock
        self.fields = fields
        self.calls = 0

    def snapshot(self) -> StatsSnapshot:
        self.calls += 1
        return dataclasses.replace(StatsSnapshot.empty(self._clock.now()), **self.fields)  # type: ignore[arg-type]


class RecordingSink:
    def __init__(self) -> None:
        self.dispatched: list[tuple[Alert, frozenset[Channel]]] = []

    def dispatch(self, alert: Alert, channels: frozenset[Channel]) -> None:
        self.dispatched.append((alert, channels))


def _build(
    clock: FakeClock,
    rules: list[AlertRule] | None = None,
    **fields: object,
) -> tuple[AlertEvaluator, FixedSnapshotSource, RecordingSink, AlertStore, RuleRegistry]:
    source = FixedSnapshotSource(clock, **fields)
    sink = RecordingSink()
    store = AlertStore(clock=clock)
    registry = RuleRegistry(rules) if rules is not None else RuleRegistry.with_defaults()
    evaluator = AlertEvaluator(source, registry, store, sink, clock=clock, interval_seconds=30)
    return evaluator, source, sink, store, registry


def _tick_count(outcome: str) -> float:
    return REGISTRY.get_sample_value("pulsewatch_evaluation_ticks_total", {"outcome": outcome}) or 0.0


def _threshold_rule(rule_id: str, cooldown: float = 10, **kwargs: object) -> AlertRule:
    return AlertRule(
        id=rule_id,
        name=rule_id.title(),
        condition=ThresholdCondition("error_rate", Comparator.GT, 0.05),
        severity=AlertSeverity.MEDIUM,
        channels=frozenset({Channel.EMAIL}),
        cooldown_minutes=cooldown,
        **kwargs,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Firing and cooldowns
# ---------------------------------------------------------------------------


class TestFiring:
    async def test_quiet_snapshot_fires_nothing(self, clock: FakeClock) -> None:
        evaluator, source, sink, store, _ = _build(clock)
        assert await evaluator.tick() == []
        assert source.calls == 1
        assert sink.dispatched == []
        assert len(store) == 0

    async def test_fired_alert_is_stored_and_dispatched(self, clock: FakeClock) -> None:
        evaluator, _, sink, store, _ = _build(clock, error_rate=0.06)
        [alert] = await evaluator.tick()
        assert alert.rule_id == "high_error_rate"
        assert store.get(alert.id) is alert
        assert sink.dispatched == [(alert, frozenset({Channel.EMAIL, Channel.PUSH}))]

    async def test_rules_fire_in_registration_order(self, clock: FakeClock) -> None:
        evaluator, *_ = _build(clock, error_rate=0.5, memory_usage=0.95, backup_status="failed")
        fired = await evaluator.tick()
        assert [a.rule_id for a in fired] == ["high_error_rate", "low_memory", "backup_failed"]

    async def test_cooldown_suppresses_then_expires(self, clock: FakeClock) -> None:
        evaluator, _, sink, _, _ = _build(clock, error_rate=0.06)
        assert len(await evaluator.tick()) == 1

        clock.advance(minutes=14)
        assert await evaluator.tick() == []
        assert evaluator.cooldown_remaining("high_error_rate") == pytest.approx(60)

        clock.advance(minutes=1)
        assert len(await evaluator.tick()) == 1
        assert len(sink.dispatched) == 2

    async def test_zero_cooldown_fires_every_tick(self, clock: FakeClock) -> None:
        evaluator, *_ = _build(clock, database_errors=2)
        for _ in range(3):
            fired = await evaluator.tick()
            assert [a.rule_id for a in fired] == ["database_connection_failed"]

    async def test_cooldown_counts_from_trigger_not_resolution(self, clock: FakeClock) -> None:
        evaluator, _, _, store, _ = _build(clock, error_rate=0.06)
        [alert] = await evaluator.tick()
        clock.advance(minutes=10)
        store.resolve(alert.id)
        clock.advance(minutes=5)
        assert len(await evaluator.tick()) == 1

    async def test_disabled_rule_never_fires_and_keeps_no_state(self, clock: FakeClock) -> None:
        evaluator, _, _, _, registry = _build(clock, memory_usage=0.95)
        registry.set_enabled("low_memory", False)
        assert await evaluator.tick() == []
        assert evaluator.cooldown_remaining("low_memory") == 0

        registry.set_enabled("low_memory", True)
        assert [a.rule_id for a in await evaluator.tick()] == ["low_memory"]

    async def test_forget_resets_cooldown(self, clock: FakeClock) -> None:
        evaluator, *_ = _build(clock, error_rate=0.06)
        await evaluator.tick()
        assert evaluator.cooldown_remaining("high_error_rate") > 0
        evaluator.forget("high_error_rate")
        assert evaluator.cooldown_remaining("high_error_rate") == 0
        assert len(await evaluator.tick()) == 1

    def test_cooldown_remaining_unknown_rule(self, clock: FakeClock) -> None:
        evaluator, *_ = _build(clock)
        assert evaluator.cooldown_remaining("nope") == 0


class TestRuleIsolation:
    async def test_raising_predicate_does_not_block_later_rules(self, clock: FakeClock) -> None:
        def explode(_: StatsSnapshot) -> bool:
            raise ZeroDivisionError("bad rule")

        rules = [
            AlertRule(
                id="broken",
                name="Broken",
                condition=PredicateCondition(explode),
                severity=AlertSeverity.LOW,
            ),
            _threshold_rule("after_broken"),
        ]
        evaluator, _, _, store, _ = _build(clock, rules, error_rate=0.2)
        fired = await evaluator.tick()
        assert [a.rule_id for a in fired] == ["after_broken"]
        assert [a.rule_id for a in store.list()] == ["after_broken"]
        assert evaluator.cooldown_remaining("broken") == 0

    async def test_unknown_threshold_field_is_isolated(self, clock: FakeClock) -> None:
        rules = [
            AlertRule(
                id="typo",
                name="Typo",
                condition=ThresholdCondition("eror_rate", Comparator.GT, 0),
                severity=AlertSeverity.LOW,
            ),
            _threshold_rule("valid"),
        ]
        evaluator, *_ = _build(clock, rules, error_rate=0.2)
        assert [a.rule_id for a in await evaluator.tick()] == ["valid"]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_start_outside_event_loop_raises(self, clock: FakeClock) -> None:
        evaluator, *_ = _build(clock)
        with pytest.raises(MonitoringStartError):
            evaluator.start()
        assert not evaluator.running

    async def test_start_and_stop_are_idempotent(self, clock: FakeClock) -> None:
        evaluator, *_ = _build(clock)
        evaluator.start()
        evaluator.start()
        assert evaluator.running
        await evaluator.stop()
        await evaluator.stop()
        assert not evaluator.running

    async def test_stop_before_start(self, clock: FakeClock) -> None:
        evaluator, *_ = _build(clock)
        await evaluator.stop()
        assert not evaluator.running

    async def test_overlapping_tick_is_skipped(self, clock: FakeClock) -> None:
        release = asyncio.Event()
        entered = asyncio.Event()

        class SlowSource(FixedSnapshotSource):
            def snapshot(self) -> StatsSnapshot:
                loop.call_soon_threadsafe(entered.set)
                asyncio.run_coroutine_threadsafe(release.wait(), loop).result(timeout=5)
                return super().snapshot()

        loop = asyncio.get_running_loop()
        source = SlowSource(clock, error_rate=0.06)
        evaluator = AlertEvaluator(
            source,
            RuleRegistry.with_defaults(),
            AlertStore(clock=clock),
            RecordingSink(),
            clock=clock,
        )

        first = asyncio.create_task(evaluator.tick())
        await entered.wait()
        assert await evaluator.tick() == []
        release.set()
        assert len(await first) == 1
        assert source.calls == 1

    async def test_failed_snapshot_is_counted_as_failed_tick(self, clock: FakeClock) -> None:
        class BrokenSource(FixedSnapshotSource):
            def snapshot(self) -> StatsSnapshot:
                raise RuntimeError("buffer unavailable")

        evaluator = AlertEvaluator(
            BrokenSource(clock),
            RuleRegistry.with_defaults(),
            AlertStore(clock=clock),
            RecordingSink(),
            clock=clock,
        )
        failed_before = _tick_count("failed")
        completed_before = _tick_count("completed")

        with pytest.raises(RuntimeError, match="buffer unavailable"):
            await evaluator.tick()

        assert _tick_count("failed") == failed_before + 1
        assert _tick_count("completed") == completed_before
        # the overlap guard is released for the next tick
        with pytest.raises(RuntimeError):
            await evaluator.tick()
        assert _tick_count("failed") == failed_before + 2


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestCooldownProperty:
    @settings(max_examples=50, deadline=None)
    @given(
        cooldown=st.integers(min_value=0, max_value=120),
        steps=st.lists(st.integers(min_value=0, max_value=600), min_size=1, max_size=20),
    )
    def test_consecutive_triggers_respect_cooldown(self, cooldown: int, steps: list[int]) -> None:
        clock = FakeClock()
        evaluator, *_ = _build(clock, [_threshold_rule("always", cooldown=cooldown)], error_rate=1.0)
        trigger_times: list[float] = []
        for step in steps:
            clock.advance(step)
            if asyncio.run(evaluator.tick()):
                trigger_times.append(clock.monotonic())
        assert trigger_times
        for earlier, later in zip(trigger_times, trigger_times[1:]):
            assert later - earlier >= cooldown * 60
