"""Alert evaluation, storage and the operator-facing service.

Exports:
    AlertStore            -- Owns Alert records and their open/resolved lifecycle.
    AlertEvaluator        -- Recurring tick: snapshot -> rules -> alerts -> dispatch.
    AlertingService       -- Query/control facade used by the REST API.
    MonitoringStartError  -- Raised when evaluation cannot be scheduled.
    compute_health_score  -- 0..100 health score from a snapshot and alert stats.
"""

from pulsewatch.alerts.evaluator import AlertEvaluator, MonitoringStartError
from pulsewatch.alerts.health import compute_health_score
from pulsewatch.alerts.service import AlertingService
from pulsewatch.alerts.store import AlertStore

__all__ = [
    "AlertEvaluator",
    "AlertStore",
    "AlertingService",
    "MonitoringStartError",
    "compute_health_score",
]
