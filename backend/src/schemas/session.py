"""Session snapshot carried inside the signed token, and its external projections."""
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from models.user import Role


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Identity fields cached in the session token.

    The database is the source of truth; a snapshot is only refreshed on an
    identity-establishing event (sign-in) or an explicit update trigger. Between
    those it may lag behind storage.

    WARNING: role and onboarded here can be stale. Anything that must reflect the
    current stored state (e.g. landing redirects) reads the User row instead.
    """

    id: int
    name: str | None
    image: str | None
    role: Role
    onboarded: bool

    def to_claims(self) -> dict[str, Any]:
        """Token claims for this snapshot."""
        return {
            "sub": str(self.id),
            "name": self.name,
            "picture": self.image,
            "role": self.role.value,
            "onboarded": self.onboarded,
        }

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "SessionSnapshot | None":
        """Rebuild a snapshot from verified claims, or None if they are incomplete."""
        try:
            return cls(
                id=int(claims["sub"]),
                name=claims.get("name"),
                image=claims.get("picture"),
                role=Role(claims["role"]),
                onboarded=bool(claims["onboarded"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


class SessionPatch(BaseModel):
    """Optional client-supplied fields applied to the token before the re-sync."""

    name: str | None = Field(default=None, min_length=2)
    image: str | None = None


class SessionUser(BaseModel):
    """User sub-object of the materialized session."""

    id: int
    name: str | None
    image: str | None
    role: Role
    onboarded: bool


class SessionResponse(BaseModel):
    """Externally visible session."""

    user: SessionUser


class TokenResponse(BaseModel):
    """Freshly issued session token."""

    access_token: str
    token_type: str = "bearer"
    session: SessionResponse
