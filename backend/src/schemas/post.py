"""Pydantic schemas for post endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PostCreate(BaseModel):
    """Schema for creating a post."""

    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    image_url: str | None = None
    published: bool = True


class PostUpdate(BaseModel):
    """Schema for a partial post update. Only fields that are sent are changed."""

    title: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)
    image_url: str | None = None
    published: bool | None = None


class AuthorSummary(BaseModel):
    """Public author fields shown alongside a post."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    image: str | None


class PostResponse(BaseModel):
    """Schema for a post without author details."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    image_url: str | None
    published: bool
    created_by_id: int
    created_at: datetime
    updated_at: datetime
    like_count: int = 0


class PostListItem(PostResponse):
    """Schema for a post in the feed or bookmark list."""

    author: AuthorSummary


class PostPage(BaseModel):
    """
    Schema for one page of a cursor-paginated post listing.

    next_cursor is absent on the last page; pass it back unchanged to fetch the next one.
    """

    items: list[PostListItem]
    next_cursor: int | None = None
