"""Publisher analytics endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_publisher_session
from schemas.engagement import DailyLikesResponse, PublishingStatsResponse
from schemas.session import SessionSnapshot
from services import analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/daily-likes", response_model=DailyLikesResponse)
async def daily_likes(
    session: SessionSnapshot = Depends(get_publisher_session),
    db: AsyncSession = Depends(get_async_session),
) -> DailyLikesResponse:
    """Likes per day over the last 30 days across the publisher's posts."""
    return await analytics_service.get_daily_likes(db, session.id)


@router.get("/publishing-stats", response_model=PublishingStatsResponse)
async def publishing_stats(
    session: SessionSnapshot = Depends(get_publisher_session),
    db: AsyncSession = Depends(get_async_session),
) -> PublishingStatsResponse:
    """Posts published per day over the last 30 days."""
    return await analytics_service.get_publishing_stats(db, session.id)
