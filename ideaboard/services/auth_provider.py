from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

import httpx

from ideaboard.config import (
    HTTP_TIMEOUT_SECONDS,
    SUPABASE_ACCESS_TOKEN,
    SUPABASE_ANON_KEY,
    SUPABASE_REFRESH_TOKEN,
    SUPABASE_URL,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: Optional[str] = None


@runtime_checkable
class AuthProvider(Protocol):
    async def get_session(self) -> Optional[AuthSession]: ...

    async def refresh_session(self) -> Optional[AuthSession]:
        """Return a fresh session, or None when the refresh was rejected."""
        ...


class SupabaseAuthProvider:
    """
    Session holder backed by the Supabase auth server.

    The session is seeded from configuration (a service account) and replaced
    whenever refresh_session() succeeds.
    """

    def __init__(
        self,
        base_url: str = SUPABASE_URL,
        anon_key: str = SUPABASE_ANON_KEY,
        session: Optional[AuthSession] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = timeout
        self._transport = transport
        if session is None and SUPABASE_ACCESS_TOKEN:
            session = AuthSession(SUPABASE_ACCESS_TOKEN, SUPABASE_REFRESH_TOKEN or None)
        self._session = session

    async def get_session(self) -> Optional[AuthSession]:
        return self._session

    async def refresh_session(self) -> Optional[AuthSession]:
        if self._session is None or not self._session.refresh_token:
            logger.warning("auth: refresh requested without a refresh token")
            return None

        url = f"{self._base_url}/auth/v1/token"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    url,
                    params={"grant_type": "refresh_token"},
                    json={"refresh_token": self._session.refresh_token},
                    headers={"apikey": self._anon_key, "Content-Type": "application/json"},
                )
        except httpx.HTTPError as ex:
            logger.warning("auth: refresh request failed: %s", ex)
            return None

        if resp.status_code != 200:
            logger.warning("auth: refresh rejected with status %s", resp.status_code)
            return None

        data = resp.json()
        access_token = data.get("access_token")
        if not access_token:
            logger.warning("auth: refresh response carried no access_token")
            return None

        self._session = AuthSession(access_token, data.get("refresh_token") or self._session.refresh_token)
        logger.info("auth: session refreshed")
        return self._session

    def sign_out(self) -> None:
        self._session = None
