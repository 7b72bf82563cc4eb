"""SMS and push senders backed by an HTTP gateway.

Both post a small JSON document to a provider-agnostic gateway endpoint
authenticated with a bearer token. The gateway owns the actual SMS or
push transport.
"""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import structlog

_log = structlog.get_logger(component="notifications.gateway")


class _GatewayClient:
    def __init__(self, url: str, token: str = "", timeout: float = 10.0) -> None:
        if not url:
            raise ValueError("Gateway url must not be empty")
        self._url = url
        self._token = token
        self._timeout = timeout

    async def _post(self, kind: str, body: dict[str, object]) -> bool:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            _log.warning("gateway_http_error", kind=kind, error=str(exc))
            return False
        if not response.is_success:
            _log.warning("gateway_non_2xx_response", kind=kind, status_code=response.status_code)
            return False
        return True


class HttpSmsSender(_GatewayClient):
    """Implements the SmsSender contract."""

    async def send(self, to: Sequence[str], message: str) -> bool:
        if not to:
            return False
        return await self._post("sms", {"to": list(to), "message": message})


class HttpPushSender(_GatewayClient):
    """Implements the PushSender contract as a broadcast to all subscribers."""

    async def broadcast(self, category: str, title: str, message: str, priority: str) -> bool:
        return await self._post(
            "push",
            {
                "category": category,
                "title": title,
                "message": message,
                "priority": priority,
                "type": "error",
            },
        )
