# ideaboard/services/fetch_service.py

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set

from pydantic import ValidationError

from ideaboard.config import PROFILE_CACHE_TTL_SECONDS, PROFILE_PATH
from ideaboard.schemas.profile import UserProfileRead
from ideaboard.services.auth_provider import AuthProvider
from ideaboard.services.cache import Cache
from ideaboard.services.cache_factory import build_cache
from ideaboard.services.errors import (
    AuthenticationFailed,
    EntityNotFound,
    FetchError,
    FetchFailed,
    NoAuthToken,
    ServiceDestroyed,
)
from ideaboard.services.remote import RemoteEndpoint, RemoteResponse
from ideaboard.services.store import PersistenceStore

logger = logging.getLogger(__name__)

AUTH_STATUSES = frozenset({401, 403})


class FetchState(str, Enum):
    FETCHING = "fetching"
    REFRESHING_TOKEN = "refreshing_token"
    RETRYING_FETCH = "retrying_fetch"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# One refresh, one retry: RETRYING_FETCH can never lead back to REFRESHING_TOKEN.
TRANSITIONS: Dict[FetchState, frozenset] = {
    FetchState.FETCHING: frozenset({FetchState.SUCCEEDED, FetchState.REFRESHING_TOKEN, FetchState.FAILED}),
    FetchState.REFRESHING_TOKEN: frozenset({FetchState.RETRYING_FETCH, FetchState.FAILED}),
    FetchState.RETRYING_FETCH: frozenset({FetchState.SUCCEEDED, FetchState.FAILED}),
    FetchState.SUCCEEDED: frozenset(),
    FetchState.FAILED: frozenset(),
}


class FetchAttempt:
    """
    One authenticated remote call with the retry-once protocol:

      FETCHING --2xx--> SUCCEEDED
      FETCHING --401/403--> REFRESHING_TOKEN --ok--> RETRYING_FETCH --2xx--> SUCCEEDED
      anything else --> FAILED

    A failed refresh or a failed retry is AuthenticationFailed; other non-2xx
    statuses on the first call are FetchFailed; transport errors on the first
    call propagate unchanged.
    """

    def __init__(self, auth: AuthProvider, remote: RemoteEndpoint, path: str, resource: str = "Profile") -> None:
        self.auth = auth
        self.remote = remote
        self.path = path
        self.resource = resource
        self.state: Optional[FetchState] = None
        self.history: List[FetchState] = []

    def _move(self, new_state: FetchState) -> None:
        if self.state is not None and new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal fetch transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def _fail(self, error: BaseException) -> BaseException:
        self._move(FetchState.FAILED)
        return error

    async def run(self) -> Any:
        session = await self.auth.get_session()
        if session is None or not session.access_token:
            raise NoAuthToken()

        self._move(FetchState.FETCHING)
        try:
            response = await self.remote.authenticated_fetch(self.path, session.access_token)
        except Exception:
            self._move(FetchState.FAILED)
            raise

        if response.ok:
            self._move(FetchState.SUCCEEDED)
            return response.body
        if response.status not in AUTH_STATUSES:
            raise self._fail(FetchFailed(response.status, self.resource))

        self._move(FetchState.REFRESHING_TOKEN)
        logger.warning("fetch: %s returned %s, refreshing session once", self.path, response.status)
        try:
            fresh = await self.auth.refresh_session()
        except Exception as ex:
            raise self._fail(AuthenticationFailed()) from ex
        if fresh is None or not fresh.access_token:
            logger.warning("fetch: session refresh failed")
            raise self._fail(AuthenticationFailed())

        self._move(FetchState.RETRYING_FETCH)
        try:
            retry: RemoteResponse = await self.remote.authenticated_fetch(self.path, fresh.access_token)
        except Exception as ex:
            raise self._fail(AuthenticationFailed()) from ex
        if not retry.ok:
            logger.warning("fetch: retry of %s after refresh returned %s", self.path, retry.status)
            raise self._fail(AuthenticationFailed())

        self._move(FetchState.SUCCEEDED)
        return retry.body


def _mark_retrieved(future: "asyncio.Future") -> None:
    # A pending request may fail after every caller went away; do not log it as unhandled.
    if not future.cancelled():
        future.exception()


class EntityFetchService:
    """
    Cache-backed, request-deduplicating reader for one kind of remote entity.

    fetch_entity() answers from the cache when it can, otherwise joins the
    in-flight request for the same key, otherwise starts one. Every caller
    joined to a request sees the same value or the same exception. Failures
    are never cached and the pending entry is dropped as soon as the request
    settles, so the next call starts fresh.
    """

    cache_prefix = "entity"
    resource = "Entity"

    def __init__(
        self,
        auth: AuthProvider,
        remote: RemoteEndpoint,
        store: PersistenceStore,
        *,
        table: str,
        resource_path: str,
        ttl_seconds: float,
        cache: Optional[Cache] = None,
    ) -> None:
        self.auth = auth
        self.remote = remote
        self.store = store
        self.table = table
        self.resource_path = resource_path
        self.ttl_seconds = ttl_seconds
        self.cache = cache if cache is not None else build_cache(ttl_seconds)
        self._pending: Dict[str, asyncio.Future] = {}
        self._loaders: Set[asyncio.Task] = set()
        self._destroyed = False

    def _cache_key(self, entity_id: str) -> str:
        return f"{self.cache_prefix}:{entity_id}"

    def _path_for(self, entity_id: str) -> str:
        return self.resource_path

    def _parse(self, entity_id: str, body: Any, fallback_hint: Optional[str]) -> Any:
        return body

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def fetch_entity(self, entity_id: str, fallback_hint: Optional[str] = None) -> Any:
        key = self._cache_key(entity_id)

        # Everything up to the await below runs without yielding to the loop,
        # so two callers can never both miss the pending check.
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        pending = self._pending.get(key)
        if pending is not None:
            logger.debug("fetch: joining in-flight request for %s", key)
        else:
            if self._destroyed:
                raise ServiceDestroyed()
            loop = asyncio.get_running_loop()
            pending = loop.create_future()
            pending.add_done_callback(_mark_retrieved)
            self._pending[key] = pending
            loader = loop.create_task(self._load(key, entity_id, fallback_hint, pending), name=f"fetch:{key}")
            self._loaders.add(loader)
            loader.add_done_callback(self._loaders.discard)
            logger.debug("fetch: started request for %s", key)

        # shield: one caller being cancelled must not cancel the shared request
        return await asyncio.shield(pending)

    async def _load(self, key: str, entity_id: str, fallback_hint: Optional[str], pending: asyncio.Future) -> None:
        attempt = FetchAttempt(self.auth, self.remote, self._path_for(entity_id), self.resource)
        try:
            body = await attempt.run()
            entity = self._parse(entity_id, body, fallback_hint)
        except Exception as ex:
            self._settle(key, pending)
            if not pending.done():
                pending.set_exception(ex)
            logger.debug("fetch: request for %s failed: %r", key, ex)
            return

        if self._settle(key, pending):
            self.cache.set(key, entity, self.ttl_seconds)
        if not pending.done():
            pending.set_result(entity)

    def _settle(self, key: str, pending: asyncio.Future) -> bool:
        """Drop the pending entry if it is still ours; False once the service was destroyed."""
        if self._pending.get(key) is pending:
            del self._pending[key]
            return not self._destroyed
        return False

    async def update_entity(self, entity_id: str, patch: Mapping[str, Any]) -> Dict[str, Any]:
        """Write through the store; the cached copy is invalidated only when the write succeeds."""
        updated = await self.store.update(self.table, entity_id, patch)
        if updated is None:
            raise EntityNotFound(self.table, entity_id)
        self.cache.delete(self._cache_key(entity_id))
        return updated

    def clear_cache(self) -> None:
        """Drop cached entities. In-flight requests keep running and repopulate on completion."""
        self.cache.clear()

    def destroy(self) -> None:
        """Tear down the cache and reject every caller still waiting on a request."""
        self._destroyed = True
        self.cache.destroy()
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(ServiceDestroyed())
        for loader in list(self._loaders):
            loader.cancel()
        if pending:
            logger.info("fetch: destroyed with %d pending request(s)", len(pending))


class ProfileService(EntityFetchService):
    """User profiles from the board API, written through to user_profiles."""

    cache_prefix = "profile"
    resource = "Profile"

    def __init__(
        self,
        auth: AuthProvider,
        remote: RemoteEndpoint,
        store: PersistenceStore,
        ttl_seconds: float = PROFILE_CACHE_TTL_SECONDS,
        *,
        resource_path: str = PROFILE_PATH,
        cache: Optional[Cache] = None,
    ) -> None:
        super().__init__(
            auth,
            remote,
            store,
            table="user_profiles",
            resource_path=resource_path,
            ttl_seconds=ttl_seconds,
            cache=cache,
        )

    def _parse(self, entity_id: str, body: Any, fallback_hint: Optional[str]) -> Dict[str, Any]:
        payload = body.get("user", body) if isinstance(body, dict) else body
        if not isinstance(payload, dict):
            raise FetchError(f"Profile payload for {entity_id} is not an object")
        payload = dict(payload)
        payload.setdefault("id", entity_id)
        if not payload.get("email") and fallback_hint:
            payload["email"] = fallback_hint
        try:
            profile = UserProfileRead.model_validate(payload)
        except ValidationError as ex:
            raise FetchError(f"Invalid profile payload for {entity_id}") from ex
        return profile.model_dump(mode="json")

    async def get_profile(self, user_id: str, email: Optional[str] = None) -> Dict[str, Any]:
        return await self.fetch_entity(user_id, email)

    async def update_profile(self, user_id: str, updates: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.update_entity(user_id, updates)
