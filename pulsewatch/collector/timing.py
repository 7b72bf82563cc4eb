"""Helpers that time a block or callable and record the duration."""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

from pulsewatch.collector.metrics_collector import MetricsCollector
from pulsewatch.models.metrics import MetricUnit

F = TypeVar("F", bound=Callable[..., Any])


@contextmanager
def timed(
    collector: MetricsCollector,
    name: str,
    tags: Mapping[str, str] | None = None,
) -> Iterator[None]:
    """Record the block's wall time in ms under *name*.

    If the block raises, the sample is tagged ``error="true"`` and the
    exception propagates.
    """
    sample_tags = dict(tags or {})
    started = time.perf_counter()
    try:
        yield
    except BaseException:
        sample_tags["error"] = "true"
        raise
    finally:
        collector.record(name, (time.perf_counter() - started) * 1000.0, MetricUnit.MS, sample_tags)


def measure(
    collector: MetricsCollector,
    name: str,
    tags: Mapping[str, str] | None = None,
) -> Callable[[F], F]:
    """Decorator form of :func:`timed` for sync and async callables."""

    def decorator(fn: F) -> F:
        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with timed(collector, name, tags):
                    return await fn(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with timed(collector, name, tags):
                return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
