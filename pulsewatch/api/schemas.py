"""Pydantic request/response models for the PulseWatch REST API."""

from __future__ import annotations

import dataclasses
import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from pulsewatch.models.alerts import Alert, AlertStats
from pulsewatch.models.metrics import StatsSnapshot
from pulsewatch.models.rules import (
    AlertRule,
    AlertSeverity,
    Channel,
    Comparator,
    ThresholdCondition,
    check_threshold,
)

_RULE_ID_RE = re.compile(r"[a-z0-9][a-z0-9_\-]{0,63}")

# Snapshot fields a threshold rule may reference.
SNAPSHOT_FIELDS = frozenset(f.name for f in dataclasses.fields(StatsSnapshot) if f.name != "timestamp")


class ErrorResponse(BaseModel):
    error: str
    detail: str


class SnapshotModel(BaseModel):
    total_requests: int
    average_response_time: float
    p95_response_time: float
    p99_response_time: float
    error_rate: float
    throughput: float
    memory_usage: float
    cpu_usage: float
    database_errors: int
    backup_status: str
    timestamp: datetime

    @classmethod
    def from_snapshot(cls, snapshot: StatsSnapshot) -> SnapshotModel:
        return cls(**dataclasses.asdict(snapshot))


class AlertModel(BaseModel):
    id: str
    rule_id: str
    message: str
    severity: AlertSeverity
    state: str
    triggered_at: datetime
    resolved: bool
    resolved_at: datetime | None
    metadata: SnapshotModel

    @classmethod
    def from_alert(cls, alert: Alert) -> AlertModel:
        return cls(
            id=alert.id,
            rule_id=alert.rule_id,
            message=alert.message,
            severity=alert.severity,
            state=alert.state.value,
            triggered_at=alert.triggered_at,
            resolved=alert.resolved,
            resolved_at=alert.resolved_at,
            metadata=SnapshotModel.from_snapshot(alert.metadata),
        )


class AlertStatsModel(BaseModel):
    total_alerts: int
    active_alerts: int
    alerts_by_severity: dict[str, int]
    average_resolution_time: float

    @classmethod
    def from_stats(cls, stats: AlertStats) -> AlertStatsModel:
        return cls(**dataclasses.asdict(stats))


class ConditionModel(BaseModel):
    type: Literal["threshold", "predicate"]
    description: str
    field: str | None = None
    comparator: Comparator | None = None
    threshold: float | str | None = None


class RuleModel(BaseModel):
    id: str
    name: str
    condition: ConditionModel
    severity: AlertSeverity
    channels: list[Channel]
    cooldown_minutes: float
    enabled: bool
    cooldown_remaining_seconds: float = 0.0

    @classmethod
    def from_rule(cls, rule: AlertRule, cooldown_remaining: float = 0.0) -> RuleModel:
        cond = rule.condition
        if isinstance(cond, ThresholdCondition):
            condition = ConditionModel(
                type="threshold",
                description=cond.describe(),
                field=cond.field,
                comparator=cond.comparator,
                threshold=cond.threshold,
            )
        else:
            condition = ConditionModel(type="predicate", description=cond.describe())
        return cls(
            id=rule.id,
            name=rule.name,
            condition=condition,
            severity=rule.severity,
            channels=sorted(rule.channels),
            cooldown_minutes=rule.cooldown_minutes,
            enabled=rule.enabled,
            cooldown_remaining_seconds=cooldown_remaining,
        )


class CreateRuleRequest(BaseModel):
    """Creates a threshold rule. Custom predicates are code-only."""

    id: str
    name: str = Field(min_length=1, max_length=200)
    field: str
    comparator: Comparator
    threshold: float | str
    severity: AlertSeverity
    channels: list[Channel] = Field(min_length=1)
    cooldown_minutes: float = Field(default=0, ge=0)
    enabled: bool = True

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not _RULE_ID_RE.fullmatch(v):
            raise ValueError("rule id must be 1-64 chars of lowercase letters, digits, '_' or '-'")
        return v

    @field_validator("field")
    @classmethod
    def validate_field(cls, v: str) -> str:
        if v not in SNAPSHOT_FIELDS:
            raise ValueError(f"unknown snapshot field {v!r}; expected one of {sorted(SNAPSHOT_FIELDS)}")
        return v

    @model_validator(mode="after")
    def validate_threshold(self) -> CreateRuleRequest:
        check_threshold(self.field, self.comparator, self.threshold)
        return self

    def to_rule(self) -> AlertRule:
        return AlertRule(
            id=self.id,
            name=self.name,
            condition=ThresholdCondition(self.field, self.comparator, self.threshold),
            severity=self.severity,
            channels=frozenset(self.channels),
            cooldown_minutes=self.cooldown_minutes,
            enabled=self.enabled,
        )


class SetEnabledRequest(BaseModel):
    enabled: bool


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    version: str
    monitoring: bool


class MetricsSummaryResponse(BaseModel):
    snapshot: SnapshotModel
    alert_stats: AlertStatsModel
    recent_alerts: list[AlertModel]
    endpoints: dict[str, dict[str, float]]
    health_score: int
