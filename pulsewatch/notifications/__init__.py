"""Notification system for PulseWatch.

Dispatches triggered Alert instances to email, SMS, push and webhook
channels with per-channel failure isolation.

Exports:
    NotificationDispatcher -- Sends an alert to its channels without blocking
                              the evaluator.
    RecipientDirectory     -- Email/SMS recipients keyed by severity.
    EmailSender, SmsSender, PushSender, WebhookSender
                           -- Sender contracts.
    SmtpEmailSender        -- SMTP email via stdlib smtplib.
    HttpSmsSender, HttpPushSender -- JSON gateway senders.
    HttpWebhookSender      -- Generic JSON POST webhook.
    build_notification_dispatcher -- Factory used by the application bootstrap.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from pulsewatch.notifications.email import SmtpEmailSender, SMTPConfig
from pulsewatch.notifications.gateway import HttpPushSender, HttpSmsSender
from pulsewatch.notifications.manager import (
    EmailSender,
    NotificationDispatcher,
    PushSender,
    RecipientDirectory,
    SmsSender,
    WebhookSender,
)
from pulsewatch.notifications.webhook import HttpWebhookSender

if TYPE_CHECKING:
    from pulsewatch.models.config import NotificationConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "EmailSender",
    "HttpPushSender",
    "HttpSmsSender",
    "HttpWebhookSender",
    "NotificationDispatcher",
    "PushSender",
    "RecipientDirectory",
    "SMTPConfig",
    "SmsSender",
    "SmtpEmailSender",
    "WebhookSender",
    "build_notification_dispatcher",
]


def build_notification_dispatcher(config: NotificationConfig) -> NotificationDispatcher:
    """Build a NotificationDispatcher from environment-resolved secrets.

    Senders are enabled only when the relevant secret ref resolves to a
    non-empty string. The ``*_secret_ref`` fields in NotificationConfig
    are names of environment variables that hold the actual secret values.

    Email:
        env value is ``smtp[s]://user:pass@host:port/from@addr``.
    SMS / Push:
        env value is the gateway endpoint URL; the optional
        ``gateway_token_ref`` env var holds a bearer token for both.
    Webhook:
        env value is the webhook URL.
    """
    email: SmtpEmailSender | None = None
    sms: HttpSmsSender | None = None
    push: HttpPushSender | None = None
    webhook: HttpWebhookSender | None = None
    webhook_url = ""

    smtp_dsn = _resolve(config.email_secret_ref)
    if smtp_dsn:
        try:
            email = SmtpEmailSender(_parse_smtp_dsn(smtp_dsn))
            _log.info("email_channel_enabled")
        except ValueError as exc:
            _log.warning("email_channel_disabled", reason=str(exc))
    else:
        _log.debug("email_channel_skipped", reason="secret ref env var is empty")

    token = _resolve(config.gateway_token_ref)

    sms_url = _resolve(config.sms_secret_ref)
    if sms_url:
        sms = HttpSmsSender(url=sms_url, token=token)
        _log.info("sms_channel_enabled")
    else:
        _log.debug("sms_channel_skipped", reason="secret ref env var is empty")

    push_url = _resolve(config.push_secret_ref)
    if push_url:
        push = HttpPushSender(url=push_url, token=token)
        _log.info("push_channel_enabled")
    else:
        _log.debug("push_channel_skipped", reason="secret ref env var is empty")

    webhook_url = _resolve(config.webhook_secret_ref)
    if webhook_url:
        webhook = HttpWebhookSender()
        _log.info("webhook_channel_enabled")
    else:
        _log.debug("webhook_channel_skipped", reason="secret ref env var is empty")

    recipients = RecipientDirectory(
        default_email=list(config.recipients.default_email),
        default_sms=list(config.recipients.default_sms),
        email_by_severity=dict(config.recipients.email_by_severity),
        sms_by_severity=dict(config.recipients.sms_by_severity),
    )
    dispatcher = NotificationDispatcher(
        email=email,
        sms=sms,
        push=push,
        webhook=webhook,
        recipients=recipients,
        webhook_url=webhook_url,
    )
    if not dispatcher.configured_channels:
        _log.info("no_notification_channels_configured")
    return dispatcher


def _resolve(secret_ref: str) -> str:
    if not secret_ref:
        return ""
    return os.environ.get(secret_ref, "")


def _parse_smtp_dsn(dsn: str) -> SMTPConfig:
    """Parse ``smtp[s]://user:pass@host:port/from@addr`` into SMTPConfig.

    Raises:
        ValueError: if the DSN cannot be parsed.
    """
    from urllib.parse import unquote, urlparse

    parsed = urlparse(dsn)
    if parsed.scheme not in ("smtp", "smtps"):
        raise ValueError(f"SMTP DSN must start with smtp:// or smtps://, got scheme {parsed.scheme!r}")
    return SMTPConfig(
        host=parsed.hostname or "",
        port=parsed.port or (465 if parsed.scheme == "smtps" else 587),
        username=unquote(parsed.username or ""),
        password=unquote(parsed.password or ""),
        from_addr=(parsed.path or "").lstrip("/"),
        use_tls=parsed.scheme == "smtps",
    )
