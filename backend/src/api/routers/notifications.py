"""Notification endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_session
from schemas.auth import SuccessResponse
from schemas.engagement import NotificationResponse, UnreadCount
from schemas.session import SessionSnapshot
from services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationResponse])
async def list_notifications(
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> list[NotificationResponse]:
    """The 30 most recent notifications, newest first."""
    notifications = await notification_service.get_recent(db, session.id)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> UnreadCount:
    """Number of unread notifications."""
    return UnreadCount(count=await notification_service.get_unread_count(db, session.id))


@router.post("/mark-all-read", response_model=SuccessResponse)
async def mark_all_read(
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> SuccessResponse:
    """Mark every notification as read."""
    await notification_service.mark_all_read(db, session.id)
    return SuccessResponse()
