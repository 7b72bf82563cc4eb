"""FastAPI application factory for PulseWatch.

Usage::

    from pulsewatch.api.app import create_app

    app = create_app(service=service, endpoint_stats=endpoint_stats)

The factory is designed for use by both the production bootstrap
(``pulsewatch.app``) and unit tests.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from pulsewatch.alerts.service import AlertingService
from pulsewatch.api.routes import router
from pulsewatch.api.schemas import ErrorResponse
from pulsewatch.collector.endpoint_stats import EndpointStats

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(
    service: AlertingService,
    endpoint_stats: EndpointStats | None = None,
) -> FastAPI:
    """Create and configure the PulseWatch FastAPI application.

    Args:
        service:        AlertingService backing every route.
        endpoint_stats: Per-endpoint request statistics fed by the timing
                        middleware. A fresh instance is created if omitted.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from pulsewatch import __version__

    app = FastAPI(
        title="PulseWatch",
        summary="Monitoring and alerting engine API",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.service = service
    app.state.endpoint_stats = endpoint_stats or EndpointStats()

    app.include_router(router, prefix=_API_PREFIX)

    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # -----------------------------------------------------------------------
    # Request timing: every handled request is a metric sample
    # -----------------------------------------------------------------------

    @app.middleware("http")
    async def record_request_timing(request: Request, call_next):  # type: ignore[no-untyped-def]
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - started) * 1000.0
            path = _route_path(request)
            service.collector.record_request(
                duration_ms, endpoint=path, method=request.method, status_code=500, error=exc
            )
            app.state.endpoint_stats.record_request(path, request.method, duration_ms, 500)
            raise
        duration_ms = (time.perf_counter() - started) * 1000.0
        path = _route_path(request)
        service.collector.record_request(
            duration_ms, endpoint=path, method=request.method, status_code=response.status_code
        )
        app.state.endpoint_stats.record_request(path, request.method, duration_ms, response.status_code)
        response.headers["X-Response-Time"] = f"{duration_ms:.0f}ms"
        return response

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = exc.errors()
        detail = ""
        if errors:
            locs = errors[0].get("loc", ())
            field = str(locs[-1]) if locs else ""
            detail = f"{field}: {errors[0].get('msg', '')}" if field else str(errors[0].get("msg", ""))
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_REQUEST", detail=detail).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app


def _route_path(request: Request) -> str:
    """Route template (``/api/v1/rules/{rule_id}``) rather than the raw path."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)
