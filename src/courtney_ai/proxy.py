"""
Server-side chat proxy: the only component that holds the private key.

Browser-side transports post to the proxy; the proxy adds the assistant id
and the bearer credential and forwards to the upstream chat API. Without a
private key it fails closed with a 500 instead of forwarding.
"""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from courtney_ai.config import WidgetConfig
from courtney_ai.errors import ConfigurationError, CourtneyError, TransportError
from courtney_ai.transport.http import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_URL = "https://api.vapi.ai/chat"


class ProxyResponse(BaseModel):
    status_code: int
    body: Any


class ChatProxy:
    def __init__(
        self,
        private_key: Optional[str],
        assistant_id: str,
        upstream_url: str = DEFAULT_UPSTREAM_URL,
        http: Optional[HttpClient] = None,
    ):
        self._private_key = private_key
        self._assistant_id = assistant_id
        self._upstream_url = upstream_url
        self._http = http or HttpClient(token=private_key)

    @classmethod
    def from_config(cls, config: WidgetConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ChatProxy":
        http = HttpClient(token=config.private_key, timeout=config.request_timeout, transport=transport)
        return cls(config.private_key, config.assistant_id, config.upstream_chat_url, http)

    def _require_key(self) -> str:
        if not self._private_key:
            raise ConfigurationError("Missing VAPI_PRIVATE_KEY")
        return self._private_key

    def build_upstream_body(self, body: dict[str, Any]) -> dict[str, Any]:
        upstream: dict[str, Any] = {"assistantId": self._assistant_id, "input": body.get("input")}
        if body.get("previousChatId"):
            upstream["previousChatId"] = body["previousChatId"]
        if body.get("assistantOverrides"):
            upstream["assistantOverrides"] = body["assistantOverrides"]
        return upstream

    async def handle(self, body: dict[str, Any]) -> ProxyResponse:
        try:
            self._require_key()
        except ConfigurationError as e:
            logger.error("Chat proxy misconfigured: %s", e)
            return ProxyResponse(status_code=500, body={"error": "Server configuration error"})

        upstream = self.build_upstream_body(body)
        logger.info(
            "Proxying chat request (input=%r, previousChatId=%s, hasOverrides=%s)",
            (upstream.get("input") or "")[:50], upstream.get("previousChatId"), "assistantOverrides" in upstream,
        )
        try:
            data = await self._http.post(self._upstream_url, upstream)
        except TransportError as e:
            if e.status is not None:
                logger.error("Upstream chat error %s: %s", e.status, (e.body or "")[:200])
                return ProxyResponse(status_code=e.status, body={"error": f"VAPI API error: {e.status}"})
            logger.error("Upstream chat request failed: %s", e)
            return ProxyResponse(status_code=500, body={"error": "Internal server error", "details": str(e)})
        except CourtneyError as e:
            logger.error("Upstream chat request failed: %s", e)
            return ProxyResponse(status_code=500, body={"error": "Internal server error", "details": str(e)})

        if isinstance(data, dict):
            logger.info("Upstream chat response %s (%d outputs)", data.get("id"), len(data.get("output") or []))
        return ProxyResponse(status_code=200, body=data)

    async def close(self) -> None:
        await self._http.close()


class ProxyTransport(httpx.AsyncBaseTransport):
    """Serve httpx requests from an in-process ChatProxy."""

    def __init__(self, proxy: ChatProxy):
        self._proxy = proxy

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        raw = await request.aread()
        try:
            body = json.loads(raw or b"{}")
        except ValueError:
            return httpx.Response(400, json={"error": "Invalid JSON body"}, request=request)
        result = await self._proxy.handle(body if isinstance(body, dict) else {})
        return httpx.Response(result.status_code, json=result.body, request=request)

    async def aclose(self) -> None:
        await self._proxy.close()
