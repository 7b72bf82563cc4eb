"""Notification dispatcher and sender contracts for PulseWatch.

EmailSender / SmsSender / PushSender / WebhookSender
    -- Protocols every transport implements. Implementations should return
       False instead of raising, but the dispatcher tolerates both.
RecipientDirectory
    -- Resolves email addresses and phone numbers for a severity.
NotificationDispatcher
    -- Fans an alert out to its channels; failures in one channel never
       block the others or the evaluator.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from pulsewatch.models.alerts import Alert
from pulsewatch.models.rules import AlertSeverity, Channel
from pulsewatch.notifications.templates import (
    build_webhook_payload,
    email_subject,
    render_email_body,
    render_email_text,
)
from pulsewatch.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.manager")

PUSH_CATEGORY = "system"
PUSH_TITLE = "System Alert"


class EmailSender(Protocol):
    async def send(self, to: Sequence[str], subject: str, body: str, text: str | None = None) -> bool: ...


class SmsSender(Protocol):
    async def send(self, to: Sequence[str], message: str) -> bool: ...


class PushSender(Protocol):
    async def broadcast(self, category: str, title: str, message: str, priority: str) -> bool: ...


class WebhookSender(Protocol):
    async def post(self, url: str, payload: Mapping[str, object]) -> bool: ...


@dataclass(frozen=True)
class Recipients:
    email: tuple[str, ...] = ()
    sms: tuple[str, ...] = ()


@dataclass
class RecipientDirectory:
    """Recipients keyed by severity.

    A severity without an override uses the defaults. Critical alerts
    escalate: they reach the defaults plus any critical-specific recipients.
    """

    default_email: list[str] = field(default_factory=list)
    default_sms: list[str] = field(default_factory=list)
    email_by_severity: dict[str, list[str]] = field(default_factory=dict)
    sms_by_severity: dict[str, list[str]] = field(default_factory=dict)

    def for_severity(self, severity: AlertSeverity) -> Recipients:
        email = self.email_by_severity.get(severity.value)
        sms = self.sms_by_severity.get(severity.value)
        if severity is AlertSeverity.CRITICAL:
            return Recipients(
                email=_merge(self.default_email, email or []),
                sms=_merge(self.default_sms, sms or []),
            )
        return Recipients(
            email=tuple(email if email is not None else self.default_email),
            sms=tuple(sms if sms is not None else self.default_sms),
        )


def _merge(first: Iterable[str], second: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys([*first, *second]))


# Fan-out order within one alert.
_CHANNEL_ORDER = (Channel.EMAIL, Channel.SMS, Channel.PUSH, Channel.WEBHOOK)


class NotificationDispatcher:
    """Fan-out dispatcher for triggered alerts.

    * Never raises -- exceptions from individual senders are caught and logged.
    * Never blocks the caller -- ``dispatch`` schedules the fan-out as a
      background asyncio task and returns it.
    * No retries: a failed channel send is logged and counted, nothing more.

    Args:
        email, sms, push, webhook: Optional senders; a missing sender means
                                   that channel is not configured.
        recipients:                Recipient directory for email and SMS.
        webhook_url:               Target URL for the webhook channel.
    """

    def __init__(
        self,
        email: EmailSender | None = None,
        sms: SmsSender | None = None,
        push: PushSender | None = None,
        webhook: WebhookSender | None = None,
        recipients: RecipientDirectory | None = None,
        webhook_url: str = "",
    ) -> None:
        self._email = email
        self._sms = sms
        self._push = push
        self._webhook = webhook
        self._recipients = recipients or RecipientDirectory()
        self._webhook_url = webhook_url
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def configured_channels(self) -> frozenset[Channel]:
        configured = {
            Channel.EMAIL: self._email,
            Channel.SMS: self._sms,
            Channel.PUSH: self._push,
            Channel.WEBHOOK: self._webhook,
        }
        return frozenset(channel for channel, sender in configured.items() if sender is not None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def resolve_channels(self, severity: AlertSeverity, declared: Iterable[Channel]) -> list[Channel]:
        """Channels an alert goes to: declared ones, plus every configured
        channel when the alert is critical."""
        targets = set(declared)
        if severity is AlertSeverity.CRITICAL:
            targets |= self.configured_channels
        return [channel for channel in _CHANNEL_ORDER if channel in targets]

    def dispatch(self, alert: Alert, channels: Iterable[Channel]) -> asyncio.Task[None] | None:
        """Schedule delivery of *alert* as a background task.

        Must be called from within a running event loop.
        """
        targets = self.resolve_channels(alert.severity, channels)
        if not targets:
            _log.info("alert_has_no_channels", alert_id=alert.id, rule_id=alert.rule_id)
            return None
        task = asyncio.ensure_future(self._fan_out(alert, targets))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight fan-out to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _fan_out(self, alert: Alert, channels: list[Channel]) -> None:
        """Deliver *alert* to every channel concurrently."""
        tasks = [self._send_one(channel, alert) for channel in channels]
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _send_one(self, channel: Channel, alert: Alert) -> None:
        """Deliver to a single channel, recording metrics regardless of outcome."""
        try:
            success = await self._deliver(channel, alert)
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "notification_channel_unexpected_error",
                channel=channel.value,
                alert_id=alert.id,
                error=str(exc),
            )
            success = False

        if success is None:
            return

        label = "true" if success else "false"
        notifications_total.labels(channel=channel.value, success=label).inc()

        if success:
            _log.info(
                "notification_sent",
                channel=channel.value,
                alert_id=alert.id,
                rule_id=alert.rule_id,
                severity=alert.severity.value,
            )
        else:
            _log.warning("notification_failed", channel=channel.value, alert_id=alert.id)

    async def _deliver(self, channel: Channel, alert: Alert) -> bool | None:
        """Invoke the sender for *channel*. None means the send was skipped."""
        recipients = self._recipients.for_severity(alert.severity)

        if channel is Channel.EMAIL:
            if self._email is None or not recipients.email:
                return self._skip(channel, alert, "no sender or recipients")
            return bool(
                await self._email.send(
                    list(recipients.email),
                    email_subject(alert),
                    render_email_body(alert),
                    text=render_email_text(alert),
                )
            )

        if channel is Channel.SMS:
            if self._sms is None or not recipients.sms:
                return self._skip(channel, alert, "no sender or recipients")
            return bool(await self._sms.send(list(recipients.sms), alert.message))

        if channel is Channel.PUSH:
            if self._push is None:
                return self._skip(channel, alert, "no sender")
            priority = "urgent" if alert.severity is AlertSeverity.CRITICAL else "high"
            return bool(await self._push.broadcast(PUSH_CATEGORY, PUSH_TITLE, alert.message, priority))

        if self._webhook is None or not self._webhook_url:
            return self._skip(channel, alert, "no sender or url")
        return bool(await self._webhook.post(self._webhook_url, build_webhook_payload(alert)))

    @staticmethod
    def _skip(channel: Channel, alert: Alert, reason: str) -> None:
        _log.warning("notification_skipped", channel=channel.value, alert_id=alert.id, reason=reason)
        return None
