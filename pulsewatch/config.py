"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from pulsewatch.models.config import (
    APIConfig,
    LogConfig,
    MonitoringConfig,
    NotificationConfig,
    PulseWatchConfig,
    RecipientConfig,
)
from pulsewatch.models.rules import AlertSeverity


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"PULSEWATCH_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str, default: list[str] | None = None) -> list[str]:
    raw = _env(key, "")
    if not raw:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _load_recipients() -> RecipientConfig:
    email_by_severity: dict[str, list[str]] = {}
    sms_by_severity: dict[str, list[str]] = {}
    for severity in AlertSeverity:
        suffix = severity.value.upper()
        emails = _env_list(f"ALERT_EMAIL_{suffix}")
        if emails:
            email_by_severity[severity.value] = emails
        numbers = _env_list(f"ALERT_SMS_{suffix}")
        if numbers:
            sms_by_severity[severity.value] = numbers
    return RecipientConfig(
        default_email=_env_list("ALERT_EMAIL", ["admin@localhost"]),
        default_sms=_env_list("ALERT_SMS"),
        email_by_severity=email_by_severity,
        sms_by_severity=sms_by_severity,
    )


def load_config() -> PulseWatchConfig:
    """Load configuration from PULSEWATCH_* environment variables."""
    return PulseWatchConfig(
        monitoring=MonitoringConfig(
            enabled=_env_bool("MONITORING_ENABLED", False),
            evaluation_interval_seconds=_env_float("EVALUATION_INTERVAL", 30.0, min_val=1.0, max_val=3600.0),
            buffer_capacity=_env_int("BUFFER_CAPACITY", 10_000, min_val=100, max_val=1_000_000),
            gauges_enabled=_env_bool("GAUGES_ENABLED", True),
            gauge_interval_seconds=_env_float("GAUGE_INTERVAL", 30.0, min_val=1.0, max_val=3600.0),
        ),
        notifications=NotificationConfig(
            email_secret_ref=_env("NOTIFICATIONS_EMAIL_SECRET_REF", ""),
            sms_secret_ref=_env("NOTIFICATIONS_SMS_SECRET_REF", ""),
            push_secret_ref=_env("NOTIFICATIONS_PUSH_SECRET_REF", ""),
            gateway_token_ref=_env("NOTIFICATIONS_GATEWAY_TOKEN_REF", ""),
            webhook_secret_ref=_env("NOTIFICATIONS_WEBHOOK_SECRET_REF", ""),
            recipients=_load_recipients(),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
