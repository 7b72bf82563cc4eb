"""Application bootstrap for PulseWatch.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → collector → rules → alert store
              → notifications → evaluator → resource gauges → REST

Shutdown is graceful: components are stopped in reverse startup order and
in-flight notifications are drained. Each component's stop error is caught
and logged independently.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from pulsewatch.alerts import AlertEvaluator, AlertingService, AlertStore, MonitoringStartError
from pulsewatch.clock import SystemClock
from pulsewatch.collector import EndpointStats, MetricsCollector
from pulsewatch.config import load_config
from pulsewatch.models.config import PulseWatchConfig
from pulsewatch.notifications import build_notification_dispatcher
from pulsewatch.observability.logging import get_logger, setup_logging
from pulsewatch.rules import RuleRegistry

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class PulseWatchApp:
    """Application root. Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already
    stopped) is safe.
    """

    def __init__(self, config: PulseWatchConfig | None = None) -> None:
        self.config = config
        self.service: AlertingService | None = None
        self._endpoint_stats: EndpointStats | None = None
        self._gauges: object | None = None
        self._rest_server: object | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("pulsewatch starting", version=_pulsewatch_version())

        self._build_engine()
        self._start_monitoring()
        self._start_gauges()
        await self._start_rest()

        self._running = True
        self._log.info("pulsewatch started", monitoring=self.service.monitoring if self.service else False)

    def _build_engine(self) -> None:
        """Construct collector, rules, store, dispatcher and evaluator."""
        assert self._log is not None
        assert self.config is not None
        try:
            clock = SystemClock()
            monitoring = self.config.monitoring
            collector = MetricsCollector(capacity=monitoring.buffer_capacity, clock=clock)
            registry = RuleRegistry.with_defaults()
            store = AlertStore(clock=clock)
            dispatcher = build_notification_dispatcher(self.config.notifications)
            evaluator = AlertEvaluator(
                collector=collector,
                registry=registry,
                store=store,
                dispatcher=dispatcher,
                clock=clock,
                interval_seconds=monitoring.evaluation_interval_seconds,
            )
            self.service = AlertingService(
                collector=collector,
                registry=registry,
                store=store,
                evaluator=evaluator,
                dispatcher=dispatcher,
                monitoring_enabled=monitoring.enabled,
            )
            self._endpoint_stats = EndpointStats()
            self._log.info(
                "alerting engine built",
                rules=len(registry),
                channels=sorted(dispatcher.configured_channels),
            )
        except Exception as exc:
            raise _ComponentError("engine", exc) from exc

    def _start_monitoring(self) -> None:
        """Start the evaluator tick. The only fatal alerting failure."""
        assert self.service is not None
        try:
            self.service.start_monitoring()
        except MonitoringStartError as exc:
            raise _ComponentError("evaluator", exc) from exc

    def _start_gauges(self) -> None:
        """Start psutil resource gauges; non-fatal."""
        assert self._log is not None
        assert self.config is not None
        assert self.service is not None
        if not self.config.monitoring.gauges_enabled:
            self._log.info("resource gauges disabled")
            return
        try:
            from pulsewatch.collector.resources import ResourceGaugeSampler

            sampler = ResourceGaugeSampler(
                self.service.collector,
                interval_seconds=self.config.monitoring.gauge_interval_seconds,
            )
            sampler.start()
            self._gauges = sampler
        except Exception as exc:
            self._log.warning(
                "resource gauges failed to start; memory and cpu rules will not fire",
                error=str(exc),
            )
            self._gauges = None

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        assert self.service is not None
        if not self.config.api.enabled:
            self._log.info("rest api disabled")
            return
        try:
            import uvicorn

            from pulsewatch.api import build_app

            fastapi_app = build_app(service=self.service, endpoint_stats=self._endpoint_stats)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("pulsewatch shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None

        await self._stop_component("gauges", self._gauges)
        self._gauges = None
        await self._stop_component("alerting", self.service)

        log.info("pulsewatch stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _pulsewatch_version() -> str:
    from pulsewatch import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = PulseWatchApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app._running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
