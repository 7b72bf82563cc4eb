"""Generic JSON webhook sender for PulseWatch."""

from __future__ import annotations

from collections.abc import Mapping

import httpx
import structlog

_log = structlog.get_logger(component="notifications.webhook")


class HttpWebhookSender:
    """Implements the WebhookSender contract with an HTTP POST.

    Args:
        headers: Optional extra headers (e.g. Authorization).
        timeout: HTTP request timeout in seconds. Defaults to 10.
    """

    def __init__(self, headers: dict[str, str] | None = None, timeout: float = 10.0) -> None:
        self._headers = headers or {}
        self._timeout = timeout

    async def post(self, url: str, payload: Mapping[str, object]) -> bool:
        """POST *payload* as JSON. Returns True on a 2xx response."""
        request_headers = {"Content-Type": "application/json", **self._headers}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=dict(payload), headers=request_headers)
        except httpx.TimeoutException:
            _log.warning("webhook_request_timeout", url=url)
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_http_error", error=str(exc))
            return False
        if response.is_success:
            return True
        _log.warning(
            "webhook_non_2xx_response",
            status_code=response.status_code,
            body=response.text[:200],
        )
        return False
