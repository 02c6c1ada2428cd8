"""User and linked sign-in identity models."""
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, CreatedAtMixin, TimestampMixin

if TYPE_CHECKING:
    from models.engagement import Bookmark, Like, Notification
    from models.post import Post


class Role(str, Enum):
    """Account role. READER until a role is explicitly chosen."""

    READER = "READER"
    PUBLISHER = "PUBLISHER"


class User(Base, TimestampMixin):
    """Identity record shared by password and OAuth sign-in."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    image: Mapped[str | None] = mapped_column(
        String(2048),
        nullable=True,
        comment="Avatar URL returned by the blob store",
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="NULL means credential sign-in is unavailable",
    )
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="user_role"),
        default=Role.READER,
    )
    onboarded: Mapped[bool] = mapped_column(Boolean, default=False)

    identities: Mapped[list["LinkedIdentity"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    posts: Mapped[list["Post"]] = relationship(back_populates="created_by")
    likes: Mapped[list["Like"]] = relationship(back_populates="user")
    bookmarks: Mapped[list["Bookmark"]] = relationship(back_populates="user")
    notifications: Mapped[list["Notification"]] = relationship(back_populates="user")


class LinkedIdentity(Base, CreatedAtMixin):
    """A third-party provider the user has signed in with."""

    __tablename__ = "linked_identities"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_linked_identity_user_provider"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    provider: Mapped[str] = mapped_column(String(50))
    provider_account_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Provider 'sub' claim, recorded for reference only",
    )

    user: Mapped["User"] = relationship(back_populates="identities")
