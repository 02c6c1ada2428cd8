"""Service layer for posts: the public feed and publisher post management."""
import logging

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.engagement import Like
from models.post import Post
from schemas.post import AuthorSummary, PostCreate, PostListItem, PostPage, PostResponse, PostUpdate
from services.exceptions import NotFoundOrForbiddenError, PostNotFoundError
from services.pagination import DEFAULT_PAGE_SIZE, paginate
from services.utils import escape_like

logger = logging.getLogger(__name__)


async def get_like_counts(db: AsyncSession, post_ids: list[int]) -> dict[int, int]:
    """Like count per post id; posts without likes map to 0."""
    counts = dict.fromkeys(post_ids, 0)
    if not post_ids:
        return counts
    rows = await db.execute(
        select(Like.post_id, func.count())
        .where(Like.post_id.in_(post_ids))
        .group_by(Like.post_id),
    )
    for post_id, count in rows:
        counts[post_id] = count
    return counts


def _to_response(post: Post, like_count: int) -> PostResponse:
    response = PostResponse.model_validate(post)
    response.like_count = like_count
    return response


async def to_list_items(db: AsyncSession, posts: list[Post]) -> list[PostListItem]:
    """Attach author summaries and like counts. Posts must have created_by loaded."""
    counts = await get_like_counts(db, [p.id for p in posts])
    return [
        PostListItem(
            **_to_response(post, counts[post.id]).model_dump(),
            author=AuthorSummary.model_validate(post.created_by),
        )
        for post in posts
    ]


async def get_feed(
    db: AsyncSession,
    cursor: int | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    search: str | None = None,
) -> PostPage:
    """
    Page through published posts, newest first.

    Args:
        db: Database session.
        cursor: Id of the last post from the previous page.
        limit: Page size.
        search: Case-insensitive substring matched against title or content.
    """
    query = (
        select(Post)
        .where(Post.published.is_(True))
        .options(selectinload(Post.created_by))
    )
    if search:
        pattern = f"%{escape_like(search)}%"
        query = query.where(
            or_(
                Post.title.ilike(pattern, escape="\\"),
                Post.content.ilike(pattern, escape="\\"),
            ),
        )

    page = await paginate(
        db,
        query,
        order_column=Post.created_at,
        id_column=Post.id,
        limit=limit,
        cursor=cursor,
    )
    return PostPage(items=await to_list_items(db, list(page.rows)), next_cursor=page.next_cursor)


async def get_my_posts(db: AsyncSession, user_id: int) -> list[PostResponse]:
    """All of a publisher's posts, published or not, newest first."""
    result = await db.execute(
        select(Post)
        .where(Post.created_by_id == user_id)
        .order_by(Post.created_at.desc(), Post.id.desc()),
    )
    posts = list(result.scalars().all())
    counts = await get_like_counts(db, [p.id for p in posts])
    return [_to_response(post, counts[post.id]) for post in posts]


async def get_post(db: AsyncSession, post_id: int) -> PostListItem:
    """Read a single post with its author and like count."""
    result = await db.execute(
        select(Post)
        .where(Post.id == post_id)
        .options(selectinload(Post.created_by)),
    )
    post = result.scalar_one_or_none()
    if post is None:
        raise PostNotFoundError
    items = await to_list_items(db, [post])
    return items[0]


async def create_post(db: AsyncSession, user_id: int, data: PostCreate) -> PostResponse:
    """Create a post owned by the publisher."""
    post = Post(
        title=data.title,
        content=data.content,
        image_url=data.image_url,
        published=data.published,
        created_by_id=user_id,
    )
    db.add(post)
    await db.flush()
    await db.refresh(post)
    logger.info("User id=%s created post id=%s", user_id, post.id)
    return _to_response(post, 0)


async def update_post(
    db: AsyncSession,
    user_id: int,
    post_id: int,
    data: PostUpdate,
) -> PostResponse:
    """
    Apply the fields that were sent. Ownership is part of the UPDATE's WHERE
    clause, so there is no window between the check and the write.

    Raises:
        NotFoundOrForbiddenError: No post with this id belongs to the user.
    """
    changes = data.model_dump(exclude_unset=True)
    # title, content and published are not nullable; an explicit null means "leave as is"
    changes = {
        field: value
        for field, value in changes.items()
        if value is not None or field == "image_url"
    }
    owned = (Post.id == post_id, Post.created_by_id == user_id)

    if changes:
        result = await db.execute(
            update(Post)
            .where(*owned)
            .values(**changes)
            .returning(Post)
            .execution_options(populate_existing=True),
        )
    else:
        result = await db.execute(select(Post).where(*owned))
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundOrForbiddenError

    counts = await get_like_counts(db, [post.id])
    return _to_response(post, counts[post.id])


async def delete_post(db: AsyncSession, user_id: int, post_id: int) -> None:
    """
    Delete a post the user owns.

    Raises:
        NotFoundOrForbiddenError: No post with this id belongs to the user.
    """
    result = await db.execute(
        delete(Post)
        .where(Post.id == post_id, Post.created_by_id == user_id)
        .returning(Post.id),
    )
    if result.scalar_one_or_none() is None:
        raise NotFoundOrForbiddenError
    logger.info("User id=%s deleted post id=%s", user_id, post_id)
