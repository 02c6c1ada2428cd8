"""Service layer for notifications."""
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.engagement import Notification

logger = logging.getLogger(__name__)

RECENT_LIMIT = 30


async def notify(db: AsyncSession, user_id: int, message: str) -> Notification:
    """Queue an unread notification for a user."""
    notification = Notification(user_id=user_id, message=message, read=False)
    db.add(notification)
    await db.flush()
    logger.debug("Notification id=%s for user id=%s", notification.id, user_id)
    return notification


async def get_recent(db: AsyncSession, user_id: int) -> list[Notification]:
    """The user's most recent notifications, newest first."""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(RECENT_LIMIT),
    )
    return list(result.scalars().all())


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    """Number of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False)),
    )
    return result.scalar() or 0


async def mark_all_read(db: AsyncSession, user_id: int) -> None:
    """Mark every unread notification as read."""
    await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True),
    )
