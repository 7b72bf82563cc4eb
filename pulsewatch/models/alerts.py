"""Alert data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import uuid4

from pulsewatch.models.metrics import StatsSnapshot
from pulsewatch.models.rules import AlertSeverity


class AlertState(StrEnum):
    """Alert lifecycle. ``open -> resolved`` is the only transition."""

    OPEN = "open"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Alert:
    """Created by the evaluator, owned by AlertStore, never deleted.

    ``severity`` and ``metadata`` are frozen at creation. Resolving produces
    a replaced instance that differs only in ``resolved``/``resolved_at``.
    """

    rule_id: str
    message: str
    severity: AlertSeverity
    triggered_at: datetime
    metadata: StatsSnapshot
    resolved: bool = False
    resolved_at: datetime | None = None
    id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def state(self) -> AlertState:
        return AlertState.RESOLVED if self.resolved else AlertState.OPEN

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "message": self.message,
            "severity": self.severity.value,
            "state": self.state.value,
            "triggered_at": self.triggered_at.isoformat(),
            "resolved": self.resolved,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class AlertStats:
    """Aggregate view over every alert in the store.

    ``average_resolution_time`` is in seconds and is 0 when nothing has
    been resolved yet.
    """

    total_alerts: int
    active_alerts: int
    alerts_by_severity: dict[str, int]
    average_resolution_time: float
