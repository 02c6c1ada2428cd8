"""Publisher analytics: simple per-day grouping over the last 30 days."""
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.engagement import Like
from models.post import Post
from schemas.engagement import DailyCount, DailyLikesResponse, PublishingStatsResponse

WINDOW_DAYS = 30


def _as_utc_date(value: datetime) -> date:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).date()


def bucket_by_day(timestamps: Iterable[datetime], today: date) -> list[DailyCount]:
    """Count timestamps per day for the window ending today, zero-filling empty days."""
    counts = Counter(_as_utc_date(ts) for ts in timestamps)
    days = [today - timedelta(days=offset) for offset in range(WINDOW_DAYS - 1, -1, -1)]
    return [DailyCount(date=day, count=counts.get(day, 0)) for day in days]


def _window_start(now: datetime) -> datetime:
    return now - timedelta(days=WINDOW_DAYS)


async def get_daily_likes(db: AsyncSession, user_id: int) -> DailyLikesResponse:
    """Likes per day on the publisher's posts, with lifetime totals."""
    now = datetime.now(UTC)
    post_ids = list(
        (await db.execute(select(Post.id).where(Post.created_by_id == user_id))).scalars(),
    )
    if not post_ids:
        return DailyLikesResponse(daily_likes=[], total_likes=0, total_posts=0)

    recent = await db.execute(
        select(Like.created_at).where(
            Like.post_id.in_(post_ids),
            Like.created_at >= _window_start(now),
        ),
    )
    total_likes = await db.execute(
        select(func.count()).select_from(Like).where(Like.post_id.in_(post_ids)),
    )
    return DailyLikesResponse(
        daily_likes=bucket_by_day(recent.scalars(), now.date()),
        total_likes=total_likes.scalar() or 0,
        total_posts=len(post_ids),
    )


async def get_publishing_stats(db: AsyncSession, user_id: int) -> PublishingStatsResponse:
    """Posts created per day by the publisher."""
    now = datetime.now(UTC)
    result = await db.execute(
        select(Post.created_at).where(
            Post.created_by_id == user_id,
            Post.created_at >= _window_start(now),
        ),
    )
    return PublishingStatsResponse(
        publishing_frequency=bucket_by_day(result.scalars(), now.date()),
    )
