"""SQLAlchemy models."""
from models.base import Base, CreatedAtMixin, TimestampMixin
from models.engagement import Bookmark, Like, Notification
from models.post import Post
from models.user import LinkedIdentity, Role, User

__all__ = [
    "Base",
    "Bookmark",
    "CreatedAtMixin",
    "Like",
    "LinkedIdentity",
    "Notification",
    "Post",
    "Role",
    "TimestampMixin",
    "User",
]
