"""Message rendering shared by the notification channels."""

from __future__ import annotations

from html import escape

from pulsewatch.models.alerts import Alert
from pulsewatch.models.rules import AlertSeverity

SEVERITY_COLOR: dict[AlertSeverity, str] = {
    AlertSeverity.LOW: "#28a745",
    AlertSeverity.MEDIUM: "#ffc107",
    AlertSeverity.HIGH: "#fd7e14",
    AlertSeverity.CRITICAL: "#dc3545",
}
_DEFAULT_COLOR = "#6c757d"


def email_subject(alert: Alert) -> str:
    return f"[{alert.severity.value.upper()}] {alert.message}"


def render_email_body(alert: Alert) -> str:
    """HTML body with the alert and the snapshot that triggered it."""
    color = SEVERITY_COLOR.get(alert.severity, _DEFAULT_COLOR)
    snap = alert.metadata
    triggered = alert.triggered_at.strftime("%Y-%m-%d %H:%M:%S UTC")
    return f"""<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: {color};">System Alert - {alert.severity.value.upper()}</h2>
  <p><strong>Alert:</strong> {escape(alert.message)}</p>
  <p><strong>Time:</strong> {triggered}</p>
  <p><strong>Rule:</strong> {escape(alert.rule_id)}</p>
  <h3>System Metrics:</h3>
  <ul>
    <li>Error Rate: {snap.error_rate * 100:.2f}%</li>
    <li>Avg Response Time: {snap.average_response_time:.0f}ms</li>
    <li>P95 Response Time: {snap.p95_response_time:.0f}ms</li>
    <li>Memory Usage: {snap.memory_usage * 100:.2f}%</li>
    <li>CPU Usage: {snap.cpu_usage * 100:.2f}%</li>
  </ul>
  <p style="color: #666; font-size: 12px;">Alert ID: {alert.id}</p>
</div>"""


def render_email_text(alert: Alert) -> str:
    """Plain-text counterpart of render_email_body."""
    snap = alert.metadata
    lines = [
        f"System Alert - {alert.severity.value.upper()}",
        "",
        f"Alert: {alert.message}",
        f"Time:  {alert.triggered_at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        f"Rule:  {alert.rule_id}",
        "",
        "System Metrics:",
        f"  Error Rate:        {snap.error_rate * 100:.2f}%",
        f"  Avg Response Time: {snap.average_response_time:.0f}ms",
        f"  P95 Response Time: {snap.p95_response_time:.0f}ms",
        f"  Memory Usage:      {snap.memory_usage * 100:.2f}%",
        f"  CPU Usage:         {snap.cpu_usage * 100:.2f}%",
        "",
        f"Alert ID: {alert.id}",
    ]
    return "\n".join(lines)


def build_webhook_payload(alert: Alert) -> dict[str, object]:
    """Chat-webhook style payload: a text line plus one attachment."""
    return {
        "text": f"{alert.severity.value.upper()}: {alert.message}",
        "attachments": [
            {
                "color": SEVERITY_COLOR.get(alert.severity, _DEFAULT_COLOR),
                "fields": [
                    {"title": "Alert", "value": alert.message, "short": False},
                    {"title": "Time", "value": alert.triggered_at.isoformat(), "short": True},
                    {"title": "Severity", "value": alert.severity.value, "short": True},
                ],
            }
        ],
        "alert": alert.to_dict(),
    }
