"""Alert rule data structures.

Rule conditions are a tagged union:

ThresholdCondition -- built-in comparison of one StatsSnapshot field
                      against a constant. Plain data: serializable and
                      introspectable.
PredicateCondition -- arbitrary callable over a StatsSnapshot for rules
                      that cannot be expressed as a single comparison.
"""

from __future__ import annotations

import math
import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, fields
from enum import StrEnum

from pulsewatch.models.metrics import StatsSnapshot


class AlertSeverity(StrEnum):
    """Ordinal alert severity. Controls fan-out breadth and recipients."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[AlertSeverity, int] = {
    AlertSeverity.LOW: 0,
    AlertSeverity.MEDIUM: 1,
    AlertSeverity.HIGH: 2,
    AlertSeverity.CRITICAL: 3,
}


class Channel(StrEnum):
    """Delivery mechanism for an alert."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    WEBHOOK = "webhook"


class Comparator(StrEnum):
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    EQ = "=="
    NE = "!="


_COMPARE: dict[Comparator, Callable[[object, object], bool]] = {
    Comparator.GT: operator.gt,
    Comparator.GTE: operator.ge,
    Comparator.LT: operator.lt,
    Comparator.LTE: operator.le,
    Comparator.EQ: operator.eq,
    Comparator.NE: operator.ne,
}

_EQUALITY = frozenset({Comparator.EQ, Comparator.NE})

# Snapshot fields compared as strings; every other field is numeric.
TEXT_FIELDS = frozenset(f.name for f in fields(StatsSnapshot) if f.type in ("str", str))
NUMERIC_FIELDS = frozenset(
    f.name for f in fields(StatsSnapshot) if f.name != "timestamp" and f.name not in TEXT_FIELDS
)


def check_threshold(field_name: str, comparator: Comparator, threshold: object) -> None:
    """Raise ValueError when *threshold* cannot be compared with *field_name*.

    Unknown field names are left alone; they fail at evaluation time.
    """
    if field_name in TEXT_FIELDS:
        if not isinstance(threshold, str):
            raise ValueError(f"{field_name} needs a string threshold, got {threshold!r}")
        if comparator not in _EQUALITY:
            raise ValueError(f"{field_name} only supports == and !=, got {comparator.value}")
    elif field_name in NUMERIC_FIELDS:
        if isinstance(threshold, bool) or not isinstance(threshold, int | float):
            raise ValueError(f"{field_name} needs a numeric threshold, got {threshold!r}")
        if isinstance(threshold, float) and not math.isfinite(threshold):
            raise ValueError(f"{field_name} needs a finite threshold, got {threshold!r}")


@dataclass(frozen=True)
class ThresholdCondition:
    """``snapshot.<field> <comparator> threshold``.

    Raises AttributeError when *field* is not a StatsSnapshot attribute;
    the evaluator treats that like any other failing condition.
    """

    field: str
    comparator: Comparator
    threshold: float | str

    kind = "threshold"

    def __post_init__(self) -> None:
        object.__setattr__(self, "comparator", Comparator(self.comparator))
        check_threshold(self.field, self.comparator, self.threshold)

    def evaluate(self, snapshot: StatsSnapshot) -> bool:
        value = getattr(snapshot, self.field)
        return bool(_COMPARE[self.comparator](value, self.threshold))

    def describe(self) -> str:
        threshold = f'"{self.threshold}"' if isinstance(self.threshold, str) else f"{self.threshold:g}"
        return f"{self.field} {self.comparator.value} {threshold}"


@dataclass(frozen=True)
class PredicateCondition:
    """Custom condition carried as a callable."""

    predicate: Callable[[StatsSnapshot], bool]
    description: str = "custom predicate"

    kind = "predicate"

    def evaluate(self, snapshot: StatsSnapshot) -> bool:
        return bool(self.predicate(snapshot))

    def describe(self) -> str:
        return self.description


RuleCondition = ThresholdCondition | PredicateCondition


@dataclass(frozen=True)
class AlertRule:
    """A named condition with severity, delivery channels and a cooldown.

    Owned by RuleRegistry. Instances are immutable; the registry swaps in a
    replaced copy when a rule is enabled or disabled.
    """

    id: str
    name: str
    condition: RuleCondition
    severity: AlertSeverity
    channels: frozenset[Channel] = field(default_factory=frozenset)
    cooldown_minutes: float = 0
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Alert rule id must not be empty")
        if self.cooldown_minutes < 0:
            raise ValueError(f"cooldown_minutes must be >= 0, got {self.cooldown_minutes}")
        # Accept any iterable of channel names.
        object.__setattr__(self, "channels", _channel_set(self.channels))
        object.__setattr__(self, "severity", AlertSeverity(self.severity))

    @property
    def cooldown_seconds(self) -> float:
        return self.cooldown_minutes * 60.0


def _channel_set(channels: Iterable[Channel | str]) -> frozenset[Channel]:
    return frozenset(Channel(c) for c in channels)
