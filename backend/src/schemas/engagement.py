"""Pydantic schemas for likes, bookmarks, notifications and analytics."""
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class LikeState(BaseModel):
    """Whether the current user likes a post."""

    liked: bool


class BookmarkState(BaseModel):
    """Whether the current user has bookmarked a post."""

    bookmarked: bool


class BulkStatusRequest(BaseModel):
    """Post ids to report status for."""

    post_ids: list[int] = Field(max_length=100)


class LikeCount(BaseModel):
    """Total likes on a post."""

    count: int


class NotificationResponse(BaseModel):
    """Schema for a notification."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    message: str
    read: bool
    created_at: datetime


class UnreadCount(BaseModel):
    """Number of unread notifications."""

    count: int


class DailyCount(BaseModel):
    """Count for one UTC day."""

    date: date
    count: int


class DailyLikesResponse(BaseModel):
    """Likes per day across a publisher's posts, plus lifetime totals."""

    daily_likes: list[DailyCount]
    total_likes: int
    total_posts: int


class PublishingStatsResponse(BaseModel):
    """Posts created per day."""

    publishing_frequency: list[DailyCount]
