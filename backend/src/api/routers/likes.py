"""Like endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_session
from schemas.engagement import BulkStatusRequest, LikeCount, LikeState
from schemas.session import SessionSnapshot
from services import engagement_service

router = APIRouter(prefix="/likes", tags=["likes"])


@router.post("/status", response_model=dict[int, bool])
async def get_bulk_status(
    data: BulkStatusRequest,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> dict[int, bool]:
    """Like status for several posts at once, keyed by post id."""
    return await engagement_service.get_bulk_status(db, "like", session.id, data.post_ids)


@router.post("/{post_id}/toggle", response_model=LikeState)
async def toggle_like(
    post_id: int,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> LikeState:
    """Like the post if not liked, otherwise unlike it."""
    liked = await engagement_service.toggle_like(db, session.id, post_id)
    return LikeState(liked=liked)


@router.get("/{post_id}", response_model=LikeState)
async def get_status(
    post_id: int,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> LikeState:
    """Whether the current user likes the post."""
    liked = await engagement_service.get_status(db, "like", session.id, post_id)
    return LikeState(liked=liked)


@router.get("/{post_id}/count", response_model=LikeCount)
async def get_count(
    post_id: int,
    db: AsyncSession = Depends(get_async_session),
) -> LikeCount:
    """Public like count for a post."""
    return LikeCount(count=await engagement_service.get_like_count(db, post_id))
