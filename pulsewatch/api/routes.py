"""Operator routes: alerts, rules and metrics summary."""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from pulsewatch.alerts.service import AlertingService
from pulsewatch.api.schemas import (
    AlertModel,
    AlertStatsModel,
    CreateRuleRequest,
    ErrorResponse,
    HealthResponse,
    MetricsSummaryResponse,
    RuleModel,
    SetEnabledRequest,
    SnapshotModel,
)
from pulsewatch.rules.registry import DuplicateRuleError

router = APIRouter()

_RECENT_ALERTS = 10


def _service(request: Request) -> AlertingService:
    return request.app.state.service  # type: ignore[no-any-return]


def _not_found(kind: str, ident: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(error=f"{kind.upper()}_NOT_FOUND", detail=f"{kind} '{ident}' not found").model_dump(),
    )


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from pulsewatch import __version__

    return HealthResponse(version=__version__, monitoring=_service(request).monitoring)


# --- alerts ---------------------------------------------------------------


@router.get("/alerts", response_model=list[AlertModel])
async def list_alerts(request: Request, active: bool = False) -> list[AlertModel]:
    service = _service(request)
    alerts = service.list_active_alerts() if active else service.list_alerts()
    return [AlertModel.from_alert(a) for a in alerts]


@router.get("/alerts/stats", response_model=AlertStatsModel)
async def alert_stats(request: Request) -> AlertStatsModel:
    return AlertStatsModel.from_stats(_service(request).get_stats())


@router.post("/alerts/{alert_id}/resolve", response_model=AlertModel)
async def resolve_alert(request: Request, alert_id: str) -> AlertModel | JSONResponse:
    alert = _service(request).resolve_alert(alert_id)
    if alert is None:
        return _not_found("alert", alert_id)
    return AlertModel.from_alert(alert)


# --- rules ----------------------------------------------------------------


@router.get("/rules", response_model=list[RuleModel])
async def list_rules(request: Request) -> list[RuleModel]:
    service = _service(request)
    return [RuleModel.from_rule(r, service.cooldown_remaining(r.id)) for r in service.list_rules()]


@router.post("/rules", response_model=RuleModel, status_code=status.HTTP_201_CREATED)
async def create_rule(request: Request, body: CreateRuleRequest) -> RuleModel | JSONResponse:
    rule = body.to_rule()
    try:
        _service(request).add_rule(rule)
    except DuplicateRuleError as exc:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=ErrorResponse(error="RULE_EXISTS", detail=str(exc)).model_dump(),
        )
    return RuleModel.from_rule(rule)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_rule(request: Request, rule_id: str) -> JSONResponse | None:
    if not _service(request).remove_rule(rule_id):
        return _not_found("rule", rule_id)
    return None


@router.put("/rules/{rule_id}/enabled", response_model=RuleModel)
async def set_rule_enabled(request: Request, rule_id: str, body: SetEnabledRequest) -> RuleModel | JSONResponse:
    service = _service(request)
    if not service.set_rule_enabled(rule_id, body.enabled):
        return _not_found("rule", rule_id)
    rule = service.get_rule(rule_id)
    if rule is None:
        return _not_found("rule", rule_id)
    return RuleModel.from_rule(rule, service.cooldown_remaining(rule_id))


# --- metrics --------------------------------------------------------------


@router.get("/metrics/summary", response_model=MetricsSummaryResponse)
async def metrics_summary(request: Request) -> MetricsSummaryResponse:
    service = _service(request)
    snapshot = service.snapshot()
    return MetricsSummaryResponse(
        snapshot=SnapshotModel.from_snapshot(snapshot),
        alert_stats=AlertStatsModel.from_stats(service.get_stats()),
        recent_alerts=[AlertModel.from_alert(a) for a in service.list_alerts()[:_RECENT_ALERTS]],
        endpoints=request.app.state.endpoint_stats.summary(),
        health_score=service.health_score(snapshot),
    )
