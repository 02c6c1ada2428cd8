"""
Authorization gate.

Three procedure classes, each a FastAPI dependency:

- public: `get_optional_session` (never fails)
- authenticated: `get_current_session` (Unauthenticated without a valid token)
- publisher: `get_publisher_session` (Unauthenticated first, then Forbidden unless
  the session role is PUBLISHER)

Dependencies resolve before the endpoint body runs, so a failing gate has no
side effects. The gate trusts the token's role; page-level routing
(`resolve_landing`) re-reads storage instead.
"""
import logging
from enum import Enum

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import Role, User
from schemas.session import SessionSnapshot
from services.exceptions import ForbiddenError, UnauthenticatedError, UserNotFoundError
from services.session_service import read_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class Landing(str, Enum):
    """Page-level routing destinations."""

    SIGN_IN = "/auth/signin"
    CHOOSE_ROLE = "/auth/choose-role"
    READER_AREA = "/feed"
    PUBLISHER_AREA = "/publisher/dashboard"


async def get_optional_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionSnapshot | None:
    """Resolve the bearer token to a snapshot; None when absent or invalid."""
    if credentials is None:
        return None
    return read_token(credentials.credentials)


async def get_current_session(
    session: SessionSnapshot | None = Depends(get_optional_session),
) -> SessionSnapshot:
    """Require any authenticated session."""
    if session is None:
        raise UnauthenticatedError
    return session


async def get_publisher_session(
    session: SessionSnapshot = Depends(get_current_session),
) -> SessionSnapshot:
    """Require an authenticated session whose role is PUBLISHER."""
    if session.role != Role.PUBLISHER:
        logger.info("Publisher procedure denied for user id=%s", session.id)
        raise ForbiddenError
    return session


async def resolve_landing(db: AsyncSession, session: SessionSnapshot | None) -> Landing:
    """
    Decide where a page request goes, in order: sign-in, role selection,
    reader area, publisher area.

    Role and onboarded come from the stored User, not the token.
    """
    if session is None:
        return Landing.SIGN_IN
    user = await db.get(User, session.id)
    if user is None:
        raise UserNotFoundError
    if not user.onboarded:
        return Landing.CHOOSE_ROLE
    if user.role == Role.PUBLISHER:
        return Landing.PUBLISHER_AREA
    return Landing.READER_AREA
