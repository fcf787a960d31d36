"""
JSON-over-HTTP client shared by the text transport, the proxy and feedback.
"""

import logging
from typing import Any, Optional

import httpx

from courtney_ai.errors import ProtocolError, TransportError

logger = logging.getLogger(__name__)

USER_AGENT = "courtney-ai/0.1.0"
DEFAULT_TIMEOUT = 30.0


class HttpClient:
    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token
        self._client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def post(self, url: str, body: Optional[dict[str, Any]] = None) -> Any:
        """POST a JSON body; return the decoded JSON response.

        Non-2xx responses raise TransportError carrying the status and body text.
        """
        try:
            resp = await self._client.post(url, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        if not resp.is_success:
            raise TransportError(
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                status=resp.status_code,
                body=resp.text,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ProtocolError(f"Response from {url} is not JSON", {"body": resp.text[:200]}) from e

    async def close(self) -> None:
        await self._client.aclose()
