# ideaboard/routers/profiles.py

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
import httpx

from ideaboard.schemas.profile import ProfileUpdate, UserProfileRead
from ideaboard.services.errors import (
    AuthenticationFailed,
    EntityNotFound,
    FetchError,
    FetchFailed,
    NoAuthToken,
    PersistenceError,
    ServiceDestroyed,
)
from ideaboard.services.fetch_service import ProfileService

logger = logging.getLogger(__name__)

# Use a fixed prefix so routes live under /profiles
router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service


@router.get("/{user_id}", response_model=UserProfileRead)
async def read_profile(
    user_id: str,
    email: Optional[str] = Query(None, description="Email to fall back on when the API omits it"),
    service: ProfileService = Depends(get_profile_service),
):
    """
    GET /profiles/{userId}
    Cache-backed profile read. Concurrent requests for the same user share one upstream call.

    Status codes:
      - 200: Profile (from cache or upstream)
      - 401: No session, or the session could not be refreshed ("please log in again")
      - 502: Upstream answered with another error status
      - 503: Upstream unreachable or service shutting down
    """
    try:
        return await service.get_profile(user_id, email)
    except (NoAuthToken, AuthenticationFailed) as ex:
        raise HTTPException(status_code=401, detail=str(ex))
    except FetchFailed as ex:
        raise HTTPException(status_code=502, detail=str(ex))
    except (httpx.TransportError, ServiceDestroyed) as ex:
        logger.warning("profiles: upstream unavailable for %s: %s", user_id, ex)
        raise HTTPException(status_code=503, detail="Profile service unavailable")
    except FetchError as ex:
        raise HTTPException(status_code=502, detail=str(ex))


@router.patch("/{user_id}", response_model=UserProfileRead)
async def update_profile(
    user_id: str,
    payload: ProfileUpdate,
    service: ProfileService = Depends(get_profile_service),
):
    """
    PATCH /profiles/{userId}
    Writes through the store and invalidates the cached profile on success.
    A failed write leaves the cache as it was.
    """
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No profile fields to update")
    try:
        return await service.update_profile(user_id, updates)
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Profile not found")
    except PersistenceError as ex:
        logger.exception("profiles: update failed for %s", user_id)
        raise HTTPException(status_code=500, detail=str(ex))


@router.delete("/cache", status_code=204)
def clear_profile_cache(service: ProfileService = Depends(get_profile_service)):
    """DELETE /profiles/cache: drop cached profiles. In-flight reads still complete and repopulate."""
    service.clear_cache()
