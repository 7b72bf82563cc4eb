"""Tests for NotificationDispatcher fan-out, recipient resolution and templates."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from conftest import (
    RecordingEmailSender,
    RecordingPushSender,
    RecordingSmsSender,
    RecordingWebhookSender,
)
from pulsewatch.models.alerts import Alert
from pulsewatch.models.metrics import StatsSnapshot
from pulsewatch.models.rules import AlertSeverity, Channel
from pulsewatch.notifications import NotificationDispatcher, RecipientDirectory
from pulsewatch.notifications.templates import (
    SEVERITY_COLOR,
    build_webhook_payload,
    email_subject,
    render_email_body,
    render_email_text,
)

_TS = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _alert(severity: AlertSeverity = AlertSeverity.HIGH, message: str = "High CPU Usage: CPU usage is 85.00%") -> Alert:
    return Alert(
        rule_id="high_cpu",
        message=message,
        severity=severity,
        triggered_at=_TS,
        metadata=StatsSnapshot.empty(_TS),
    )


# ---------------------------------------------------------------------------
# RecipientDirectory
# ---------------------------------------------------------------------------


class TestRecipientDirectory:
    def test_defaults_when_no_override(self) -> None:
        directory = RecipientDirectory(default_email=["ops@x"], default_sms=["+1"])
        recipients = directory.for_severity(AlertSeverity.MEDIUM)
        assert recipients.email == ("ops@x",)
        assert recipients.sms == ("+1",)

    def test_override_replaces_defaults_below_critical(self) -> None:
        directory = RecipientDirectory(default_email=["ops@x"], email_by_severity={"high": ["lead@x"]})
        assert directory.for_severity(AlertSeverity.HIGH).email == ("lead@x",)

    def test_critical_merges_defaults_and_overrides(self) -> None:
        directory = RecipientDirectory(
            default_email=["ops@x", "cto@x"],
            email_by_severity={"critical": ["cto@x", "oncall@x"]},
            default_sms=["+1"],
        )
        recipients = directory.for_severity(AlertSeverity.CRITICAL)
        assert recipients.email == ("ops@x", "cto@x", "oncall@x")
        assert recipients.sms == ("+1",)


# ---------------------------------------------------------------------------
# Channel resolution
# ---------------------------------------------------------------------------


class TestResolveChannels:
    def test_declared_channels_in_fixed_order(self, dispatcher: NotificationDispatcher) -> None:
        resolved = dispatcher.resolve_channels(AlertSeverity.HIGH, {Channel.PUSH, Channel.EMAIL})
        assert resolved == [Channel.EMAIL, Channel.PUSH]

    def test_critical_escalates_to_every_configured_channel(self, dispatcher: NotificationDispatcher) -> None:
        resolved = dispatcher.resolve_channels(AlertSeverity.CRITICAL, {Channel.EMAIL})
        assert resolved == [Channel.EMAIL, Channel.SMS, Channel.PUSH, Channel.WEBHOOK]

    def test_critical_escalation_limited_to_configured(self) -> None:
        dispatcher = NotificationDispatcher(email=RecordingEmailSender())
        resolved = dispatcher.resolve_channels(AlertSeverity.CRITICAL, set())
        assert resolved == [Channel.EMAIL]
        assert dispatcher.configured_channels == frozenset({Channel.EMAIL})

    def test_empty_channels_for_non_critical(self, dispatcher: NotificationDispatcher) -> None:
        assert dispatcher.resolve_channels(AlertSeverity.LOW, set()) == []


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    async def test_high_alert_reaches_declared_channels_only(
        self, dispatcher: NotificationDispatcher, senders: dict
    ) -> None:
        alert = _alert(AlertSeverity.HIGH)
        task = dispatcher.dispatch(alert, {Channel.EMAIL, Channel.PUSH})
        assert task is not None
        await dispatcher.drain()

        [(to, subject, body)] = senders["email"].calls
        assert to == ["ops@example.com"]
        assert subject == f"[HIGH] {alert.message}"
        assert alert.id in body
        [text] = senders["email"].texts
        assert text is not None
        assert alert.message in text
        assert "<" not in text
        assert senders["push"].calls == [("system", "System Alert", alert.message, "high")]
        assert senders["sms"].calls == []
        assert senders["webhook"].calls == []
        assert dispatcher.pending == 0

    async def test_critical_alert_goes_everywhere_with_urgent_push(
        self, dispatcher: NotificationDispatcher, senders: dict
    ) -> None:
        alert = _alert(AlertSeverity.CRITICAL, "Low Memory: Memory usage is 93.00% (threshold: 90%)")
        dispatcher.dispatch(alert, {Channel.EMAIL})
        await dispatcher.drain()

        assert len(senders["email"].calls) == 1
        assert senders["sms"].calls == [(["+27820000000"], alert.message)]
        assert senders["push"].calls[0][3] == "urgent"
        [(url, payload)] = senders["webhook"].calls
        assert url == "https://hooks.example.com/alerts"
        assert payload["text"] == f"CRITICAL: {alert.message}"

    async def test_dispatch_does_not_block_caller(self, recipients: RecipientDirectory) -> None:
        gate = asyncio.Event()

        class SlowEmail(RecordingEmailSender):
            async def send(self, to, subject, body):  # type: ignore[override]
                await gate.wait()
                return await super().send(to, subject, body)

        email = SlowEmail()
        dispatcher = NotificationDispatcher(email=email, recipients=recipients)
        dispatcher.dispatch(_alert(), {Channel.EMAIL})
        assert dispatcher.pending == 1
        assert email.calls == []
        gate.set()
        await dispatcher.drain()
        assert len(email.calls) == 1

    async def test_failing_channel_does_not_block_others(self, recipients: RecipientDirectory) -> None:
        email = RecordingEmailSender(raises=ConnectionError("smtp down"))
        sms = RecordingSmsSender(raises=RuntimeError("gateway exploded"))
        push = RecordingPushSender()
        webhook = RecordingWebhookSender()
        dispatcher = NotificationDispatcher(
            email=email,
            sms=sms,
            push=push,
            webhook=webhook,
            recipients=recipients,
            webhook_url="https://hooks.example.com/alerts",
        )
        dispatcher.dispatch(_alert(AlertSeverity.CRITICAL), {Channel.EMAIL, Channel.SMS})
        await dispatcher.drain()

        assert len(email.calls) == 1
        assert len(sms.calls) == 1
        assert len(push.calls) == 1
        assert len(webhook.calls) == 1

    async def test_false_result_is_not_retried(self, recipients: RecipientDirectory) -> None:
        email = RecordingEmailSender(fail=True)
        dispatcher = NotificationDispatcher(email=email, recipients=recipients)
        dispatcher.dispatch(_alert(), {Channel.EMAIL})
        await dispatcher.drain()
        assert len(email.calls) == 1

    async def test_unconfigured_channel_is_skipped(self, recipients: RecipientDirectory) -> None:
        push = RecordingPushSender()
        dispatcher = NotificationDispatcher(push=push, recipients=recipients)
        dispatcher.dispatch(_alert(), {Channel.EMAIL, Channel.SMS, Channel.PUSH})
        await dispatcher.drain()
        assert len(push.calls) == 1

    async def test_email_without_recipients_is_skipped(self) -> None:
        email = RecordingEmailSender()
        dispatcher = NotificationDispatcher(email=email, recipients=RecipientDirectory())
        dispatcher.dispatch(_alert(), {Channel.EMAIL})
        await dispatcher.drain()
        assert email.calls == []

    async def test_webhook_without_url_is_skipped(self) -> None:
        webhook = RecordingWebhookSender()
        dispatcher = NotificationDispatcher(webhook=webhook)
        dispatcher.dispatch(_alert(), {Channel.WEBHOOK})
        await dispatcher.drain()
        assert webhook.calls == []

    async def test_no_channels_returns_none(self, dispatcher: NotificationDispatcher) -> None:
        assert dispatcher.dispatch(_alert(AlertSeverity.LOW), set()) is None
        assert dispatcher.pending == 0

    async def test_drain_with_nothing_pending(self, dispatcher: NotificationDispatcher) -> None:
        await dispatcher.drain()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestTemplates:
    def test_email_subject(self) -> None:
        assert email_subject(_alert(AlertSeverity.MEDIUM, "slow")) == "[MEDIUM] slow"

    def test_email_body_escapes_message(self) -> None:
        body = render_email_body(_alert(message="<script>alert(1)</script>"))
        assert "<script>" not in body
        assert "&lt;script&gt;" in body
        assert SEVERITY_COLOR[AlertSeverity.HIGH] in body
        assert "2026-03-01 12:00:00 UTC" in body

    @pytest.mark.parametrize(
        ("severity", "color"),
        [
            (AlertSeverity.LOW, "#28a745"),
            (AlertSeverity.MEDIUM, "#ffc107"),
            (AlertSeverity.HIGH, "#fd7e14"),
            (AlertSeverity.CRITICAL, "#dc3545"),
        ],
    )
    def test_webhook_payload_color(self, severity: AlertSeverity, color: str) -> None:
        payload = build_webhook_payload(_alert(severity))
        attachment = payload["attachments"][0]  # type: ignore[index]
        assert attachment["color"] == color
        titles = [f["title"] for f in attachment["fields"]]
        assert titles == ["Alert", "Time", "Severity"]

    def test_webhook_payload_embeds_alert(self) -> None:
        alert = _alert()
        payload = build_webhook_payload(alert)
        assert payload["alert"]["id"] == alert.id  # type: ignore[index]
        assert payload["alert"]["state"] == "open"  # type: ignore[index]

    def test_email_text_is_a_readable_plain_body(self) -> None:
        alert = _alert(message="High CPU Usage: CPU usage is 85.00%")
        text = render_email_text(alert)
        assert text.startswith("System Alert - HIGH")
        assert "Alert: High CPU Usage: CPU usage is 85.00%" in text
        assert "Rule:  high_cpu" in text
        assert "2026-03-01 12:00:00 UTC" in text
        assert f"Alert ID: {alert.id}" in text
        assert "<" not in text
