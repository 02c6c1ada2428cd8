"""
Like and bookmark toggles, their status reads, and the bookmark listing.

A toggle deletes the (user, post) row if present and otherwise inserts it. The
unique constraint on (user_id, post_id) is the only concurrency guard: when two
toggles race and the insert loses, the row the winner created is the final
state and the loser reports "on" without emitting anything.
"""
import logging
from typing import Literal

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.engagement import Bookmark, Like
from models.post import Post
from models.user import User
from schemas.post import PostPage
from services.exceptions import PostNotFoundError
from services.notification_service import notify
from services.pagination import DEFAULT_PAGE_SIZE, paginate
from services.post_service import to_list_items
from services.utils import insert_unless_conflict

logger = logging.getLogger(__name__)

ToggleModel = type[Like] | type[Bookmark]


async def _get_post(db: AsyncSession, post_id: int) -> Post:
    post = await db.get(Post, post_id)
    if post is None:
        raise PostNotFoundError
    return post


async def _remove(db: AsyncSession, model: ToggleModel, user_id: int, post_id: int) -> bool:
    """Delete the (user, post) row; True if there was one."""
    result = await db.execute(
        delete(model)
        .where(model.user_id == user_id, model.post_id == post_id)
        .returning(model.id),
    )
    return result.scalars().first() is not None


async def _toggle(
    db: AsyncSession,
    model: ToggleModel,
    user_id: int,
    post_id: int,
) -> tuple[bool, bool]:
    """
    Flip the (user, post) row.

    Returns:
        (new state, whether this call created the row).
    """
    if await _remove(db, model, user_id, post_id):
        return False, False

    if not await insert_unless_conflict(db, model(user_id=user_id, post_id=post_id)):
        # A concurrent toggle inserted the same pair first; converge on "on"
        logger.info(
            "Concurrent %s toggle absorbed for user id=%s post id=%s",
            model.__tablename__, user_id, post_id,
        )
        return True, False
    return True, True


async def toggle_like(db: AsyncSession, user_id: int, post_id: int) -> bool:
    """
    Like or unlike a post. A new like notifies the post owner unless the owner
    is the one liking.

    Returns:
        True if the post is now liked.
    """
    post = await _get_post(db, post_id)
    liked, created = await _toggle(db, Like, user_id, post_id)
    if created and post.created_by_id != user_id:
        liker = await db.get(User, user_id)
        liker_name = liker.name if liker and liker.name else "Someone"
        await notify(db, post.created_by_id, f'{liker_name} liked your post "{post.title}"')
    return liked


async def toggle_bookmark(db: AsyncSession, user_id: int, post_id: int) -> bool:
    """
    Bookmark or un-bookmark a post.

    Returns:
        True if the post is now bookmarked.
    """
    await _get_post(db, post_id)
    bookmarked, _ = await _toggle(db, Bookmark, user_id, post_id)
    return bookmarked


async def get_status(
    db: AsyncSession,
    kind: Literal["like", "bookmark"],
    user_id: int,
    post_id: int,
) -> bool:
    """Whether the user currently likes / has bookmarked the post."""
    model = Like if kind == "like" else Bookmark
    result = await db.execute(
        select(model.id).where(model.user_id == user_id, model.post_id == post_id),
    )
    return result.scalar_one_or_none() is not None


async def get_bulk_status(
    db: AsyncSession,
    kind: Literal["like", "bookmark"],
    user_id: int,
    post_ids: list[int],
) -> dict[int, bool]:
    """Status for each requested post id, in one query."""
    if not post_ids:
        return {}
    model = Like if kind == "like" else Bookmark
    result = await db.execute(
        select(model.post_id).where(
            model.user_id == user_id,
            model.post_id.in_(post_ids),
        ),
    )
    marked = set(result.scalars().all())
    return {post_id: post_id in marked for post_id in post_ids}


async def get_like_count(db: AsyncSession, post_id: int) -> int:
    """Total likes on a post."""
    result = await db.execute(
        select(func.count()).select_from(Like).where(Like.post_id == post_id),
    )
    return result.scalar() or 0


async def get_bookmarks(
    db: AsyncSession,
    user_id: int,
    cursor: int | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
) -> PostPage:
    """
    Page through the user's bookmarked posts, most recently bookmarked first.

    The cursor is a bookmark id, not a post id.
    """
    query = (
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .options(selectinload(Bookmark.post).selectinload(Post.created_by))
    )
    page = await paginate(
        db,
        query,
        order_column=Bookmark.created_at,
        id_column=Bookmark.id,
        limit=limit,
        cursor=cursor,
    )
    posts = [bookmark.post for bookmark in page.rows]
    return PostPage(items=await to_list_items(db, posts), next_cursor=page.next_cursor)
