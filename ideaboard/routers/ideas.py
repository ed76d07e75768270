# ideaboard/routers/ideas.py

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ideaboard.schemas.lock import LockBadge, LockInfo, LockRequest, LockResult, UnlockResult
from ideaboard.services.errors import EntityNotFound
from ideaboard.services.lock_service import IdeaLockService

router = APIRouter(prefix="/ideas", tags=["ideas"])


def get_lock_service(request: Request) -> IdeaLockService:
    return request.app.state.lock_service


@router.get("/{idea_id}/lock", response_model=LockBadge)
async def read_lock_badge(
    idea_id: str,
    user_id: str = Query(..., min_length=1),
    service: IdeaLockService = Depends(get_lock_service),
):
    """Badge and disabled flag for the card, as seen by `user_id`."""
    try:
        return await service.lock_badge(idea_id, user_id)
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Idea not found")


@router.get("/{idea_id}/lock/info", response_model=LockInfo | None)
async def read_lock_info(idea_id: str, service: IdeaLockService = Depends(get_lock_service)):
    try:
        return await service.lock_info(idea_id)
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Idea not found")


@router.post("/{idea_id}/lock", response_model=LockResult)
async def start_editing(
    idea_id: str,
    payload: LockRequest,
    service: IdeaLockService = Depends(get_lock_service),
):
    """
    POST /ideas/{ideaId}/lock
    Someone else holding a live lock is not an error: the answer is acquired=false
    with the "Active" badge, and the client keeps its edit controls disabled.
    """
    try:
        acquired = await service.start_editing(idea_id, payload.user_id)
        badge = await service.lock_badge(idea_id, payload.user_id)
    except EntityNotFound:
        raise HTTPException(status_code=404, detail="Idea not found")
    return LockResult(acquired=acquired, badge=badge)


@router.delete("/{idea_id}/lock", response_model=UnlockResult)
async def stop_editing(
    idea_id: str,
    user_id: str = Query(..., min_length=1),
    service: IdeaLockService = Depends(get_lock_service),
):
    released = await service.stop_editing(idea_id, user_id)
    return UnlockResult(released=released)
