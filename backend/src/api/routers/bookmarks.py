"""Bookmark endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_session
from schemas.engagement import BookmarkState, BulkStatusRequest
from schemas.post import PostPage
from schemas.session import SessionSnapshot
from services import engagement_service
from services.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.get("/", response_model=PostPage)
async def list_bookmarks(
    cursor: int | None = Query(default=None, description="next_cursor from the previous page"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> PostPage:
    """The current user's bookmarked posts, most recently bookmarked first."""
    return await engagement_service.get_bookmarks(db, session.id, cursor=cursor, limit=limit)


@router.post("/status", response_model=dict[int, bool])
async def get_bulk_status(
    data: BulkStatusRequest,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> dict[int, bool]:
    """Bookmark status for several posts at once, keyed by post id."""
    return await engagement_service.get_bulk_status(db, "bookmark", session.id, data.post_ids)


@router.post("/{post_id}/toggle", response_model=BookmarkState)
async def toggle_bookmark(
    post_id: int,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkState:
    """Bookmark the post if not bookmarked, otherwise remove the bookmark."""
    bookmarked = await engagement_service.toggle_bookmark(db, session.id, post_id)
    return BookmarkState(bookmarked=bookmarked)


@router.get("/{post_id}", response_model=BookmarkState)
async def get_status(
    post_id: int,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkState:
    """Whether the current user has bookmarked the post."""
    bookmarked = await engagement_service.get_status(db, "bookmark", session.id, post_id)
    return BookmarkState(bookmarked=bookmarked)
