"""Rule registry: the set of alert rules the evaluator checks."""

from __future__ import annotations

import dataclasses

import structlog

from pulsewatch.models.rules import AlertRule
from pulsewatch.rules.defaults import default_rules

_log = structlog.get_logger(component="rules.registry")


class DuplicateRuleError(ValueError):
    """Raised when adding a rule whose id is already registered."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Alert rule '{rule_id}' is already registered")
        self.rule_id = rule_id


class RuleRegistry:
    """Holds AlertRules keyed by id, preserving registration order.

    Mutated only through add/remove/set_enabled. Callers get immutable rule
    instances, so listing never exposes mutable registry state.
    """

    def __init__(self, rules: list[AlertRule] | None = None) -> None:
        self._rules: dict[str, AlertRule] = {}
        for rule in rules or []:
            self.add_rule(rule)

    @classmethod
    def with_defaults(cls) -> RuleRegistry:
        return cls(default_rules())

    def add_rule(self, rule: AlertRule) -> None:
        if rule.id in self._rules:
            raise DuplicateRuleError(rule.id)
        self._rules[rule.id] = rule
        _log.info("rule_added", rule_id=rule.id, severity=rule.severity.value, enabled=rule.enabled)

    def remove_rule(self, rule_id: str) -> bool:
        removed = self._rules.pop(rule_id, None)
        if removed is None:
            return False
        _log.info("rule_removed", rule_id=rule_id)
        return True

    def set_enabled(self, rule_id: str, enabled: bool) -> bool:
        rule = self._rules.get(rule_id)
        if rule is None:
            return False
        if rule.enabled != enabled:
            # dict assignment to an existing key keeps its position
            self._rules[rule_id] = dataclasses.replace(rule, enabled=enabled)
            _log.info("rule_enabled_changed", rule_id=rule_id, enabled=enabled)
        return True

    def get_rule(self, rule_id: str) -> AlertRule | None:
        return self._rules.get(rule_id)

    def list_rules(self) -> list[AlertRule]:
        return list(self._rules.values())

    def list_enabled(self) -> list[AlertRule]:
        return [rule for rule in self._rules.values() if rule.enabled]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)
