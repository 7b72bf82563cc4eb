"""Shared fixtures for PulseWatch tests.

Provides a manually-advanced clock and recording channel senders so tests
can drive evaluation tick by tick without wall-clock timers or network I/O.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, timedelta

import pytest

from pulsewatch.alerts import AlertEvaluator, AlertingService, AlertStore
from pulsewatch.collector import MetricsCollector
from pulsewatch.notifications import NotificationDispatcher, RecipientDirectory
from pulsewatch.rules import RuleRegistry

_EPOCH = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Deterministic clock. ``advance()`` moves monotonic and wall time together."""

    def __init__(self, start: datetime = _EPOCH) -> None:
        self._mono = 1000.0
        self._now = start

    def monotonic(self) -> float:
        return self._mono

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0.0, *, minutes: float = 0.0) -> None:
        delta = seconds + minutes * 60.0
        self._mono += delta
        self._now += timedelta(seconds=delta)


class RecordingEmailSender:
    def __init__(self, fail: bool = False, raises: Exception | None = None) -> None:
        self.calls: list[tuple[list[str], str, str]] = []
        self.texts: list[str | None] = []
        self._fail = fail
        self._raises = raises

    async def send(self, to: Sequence[str], subject: str, body: str, text: str | None = None) -> bool:
        self.calls.append((list(to), subject, body))
        self.texts.append(text)
        if self._raises is not None:
            raise self._raises
        return not self._fail


class RecordingSmsSender:
    def __init__(self, raises: Exception | None = None) -> None:
        self.calls: list[tuple[list[str], str]] = []
        self._raises = raises

    async def send(self, to: Sequence[str], message: str) -> bool:
        self.calls.append((list(to), message))
        if self._raises is not None:
            raise self._raises
        return True


class RecordingPushSender:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str, str]] = []

    async def broadcast(self, category: str, title: str, message: str, priority: str) -> bool:
        self.calls.append((category, title, message, priority))
        return True


class RecordingWebhookSender:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, object]]] = []

    async def post(self, url: str, payload: Mapping[str, object]) -> bool:
        self.calls.append((url, dict(payload)))
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def senders() -> dict[str, object]:
    return {
        "email": RecordingEmailSender(),
        "sms": RecordingSmsSender(),
        "push": RecordingPushSender(),
        "webhook": RecordingWebhookSender(),
    }


@pytest.fixture
def recipients() -> RecipientDirectory:
    return RecipientDirectory(default_email=["ops@example.com"], default_sms=["+27820000000"])


@pytest.fixture
def dispatcher(senders: dict[str, object], recipients: RecipientDirectory) -> NotificationDispatcher:
    return NotificationDispatcher(
        email=senders["email"],  # type: ignore[arg-type]
        sms=senders["sms"],  # type: ignore[arg-type]
        push=senders["push"],  # type: ignore[arg-type]
        webhook=senders["webhook"],  # type: ignore[arg-type]
        recipients=recipients,
        webhook_url="https://hooks.example.com/alerts",
    )


@pytest.fixture
def collector(clock: FakeClock) -> MetricsCollector:
    return MetricsCollector(capacity=1000, clock=clock)


@pytest.fixture
def service(
    collector: MetricsCollector,
    dispatcher: NotificationDispatcher,
    clock: FakeClock,
) -> AlertingService:
    registry = RuleRegistry.with_defaults()
    store = AlertStore(clock=clock)
    evaluator = AlertEvaluator(
        collector=collector,
        registry=registry,
        store=store,
        dispatcher=dispatcher,
        clock=clock,
        interval_seconds=30.0,
    )
    return AlertingService(
        collector=collector,
        registry=registry,
        store=store,
        evaluator=evaluator,
        dispatcher=dispatcher,
    )
