"""Post endpoints: the public feed and publisher post management."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_session, get_publisher_session
from schemas.post import PostCreate, PostListItem, PostPage, PostResponse, PostUpdate
from schemas.session import SessionSnapshot
from services import post_service
from services.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/feed", response_model=PostPage)
async def get_feed(
    cursor: int | None = Query(default=None, description="next_cursor from the previous page"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: str | None = Query(default=None, description="Search title and content"),
    db: AsyncSession = Depends(get_async_session),
) -> PostPage:
    """
    Published posts, newest first, for infinite scroll.

    Repeat with the returned next_cursor until it is absent.
    """
    return await post_service.get_feed(db, cursor=cursor, limit=limit, search=search)


@router.get("/mine", response_model=list[PostResponse])
async def get_my_posts(
    session: SessionSnapshot = Depends(get_publisher_session),
    db: AsyncSession = Depends(get_async_session),
) -> list[PostResponse]:
    """All of the publisher's own posts, including drafts."""
    return await post_service.get_my_posts(db, session.id)


@router.get("/{post_id}", response_model=PostListItem)
async def get_post(
    post_id: int,
    session: SessionSnapshot = Depends(get_current_session),  # noqa: ARG001
    db: AsyncSession = Depends(get_async_session),
) -> PostListItem:
    """Get a single post by ID."""
    return await post_service.get_post(db, post_id)


@router.post("/", response_model=PostResponse, status_code=201)
async def create_post(
    data: PostCreate,
    session: SessionSnapshot = Depends(get_publisher_session),
    db: AsyncSession = Depends(get_async_session),
) -> PostResponse:
    """Create a new post."""
    return await post_service.create_post(db, session.id, data)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    data: PostUpdate,
    session: SessionSnapshot = Depends(get_publisher_session),
    db: AsyncSession = Depends(get_async_session),
) -> PostResponse:
    """Update a post the publisher owns."""
    return await post_service.update_post(db, session.id, post_id, data)


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    session: SessionSnapshot = Depends(get_publisher_session),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a post the publisher owns."""
    await post_service.delete_post(db, session.id, post_id)
