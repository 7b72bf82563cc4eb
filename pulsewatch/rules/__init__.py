"""Alert rule registry and the built-in rule table."""

from pulsewatch.rules.defaults import default_rules, render_message
from pulsewatch.rules.registry import DuplicateRuleError, RuleRegistry

__all__ = ["DuplicateRuleError", "RuleRegistry", "default_rules", "render_message"]
