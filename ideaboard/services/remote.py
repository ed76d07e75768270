from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from ideaboard.config import API_BASE_URL, HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteResponse:
    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class RemoteEndpoint(Protocol):
    async def authenticated_fetch(self, path: str, access_token: str) -> RemoteResponse:
        """Perform one call; transport failures raise instead of returning a response."""
        ...


class HttpRemoteEndpoint:
    """Authenticated GET against the board's API using one shared httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def authenticated_fetch(self, path: str, access_token: str) -> RemoteResponse:
        resp = await self._client.get(
            path,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
        )
        body: Any = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                logger.debug("remote: non-JSON body from %s (status %s)", path, resp.status_code)
                body = resp.text
        return RemoteResponse(status=resp.status_code, body=body)

    async def aclose(self) -> None:
        await self._client.aclose()
