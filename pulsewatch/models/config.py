"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class MonitoringConfig:
    """Evaluator and collector configuration."""

    enabled: bool = False
    evaluation_interval_seconds: float = 30.0
    buffer_capacity: int = 10_000
    gauges_enabled: bool = True
    gauge_interval_seconds: float = 30.0


@dataclass
class RecipientConfig:
    """Alert recipients. Per-severity lists override the defaults."""

    default_email: list[str] = field(default_factory=lambda: ["admin@localhost"])
    default_sms: list[str] = field(default_factory=list)
    email_by_severity: dict[str, list[str]] = field(default_factory=dict)
    sms_by_severity: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class NotificationConfig:
    """Notification channel configuration.

    The ``*_secret_ref`` fields are names of environment variables holding
    the actual secret values, never the secrets themselves.
    """

    email_secret_ref: str = ""
    sms_secret_ref: str = ""
    push_secret_ref: str = ""
    gateway_token_ref: str = ""
    webhook_secret_ref: str = ""
    recipients: RecipientConfig = field(default_factory=RecipientConfig)


@dataclass
class APIConfig:
    """REST API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class PulseWatchConfig:
    """Top-level PulseWatch configuration."""

    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
