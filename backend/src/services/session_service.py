"""
Session token synchronization.

The token is a cache of {id, name, image, role, onboarded}. It is populated in
full on sign-in, and otherwise only changes when the client fires the explicit
update trigger after a mutation it knows touched one of those fields.
"""
import dataclasses
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from core.security import decode_token, encode_token
from models.user import User
from schemas.session import (
    SessionPatch,
    SessionResponse,
    SessionSnapshot,
    SessionUser,
    TokenResponse,
)
from services.exceptions import UserNotFoundError

logger = logging.getLogger(__name__)


def snapshot_from_user(user: User) -> SessionSnapshot:
    """Identity-establishing event: every field comes from the resolved User row."""
    return SessionSnapshot(
        id=user.id,
        name=user.name,
        image=user.image,
        role=user.role,
        onboarded=user.onboarded,
    )


def apply_patch(snapshot: SessionSnapshot, patch: SessionPatch | None) -> SessionSnapshot:
    """
    Fast-path update with client-supplied fields.

    Only name and image can be patched; a field left unset or null keeps the
    current token value.
    """
    if patch is None:
        return snapshot
    changes = {
        field: value
        for field, value in patch.model_dump(exclude_unset=True).items()
        if value is not None
    }
    return dataclasses.replace(snapshot, **changes)


async def resync(
    db: AsyncSession,
    snapshot: SessionSnapshot,
    patch: SessionPatch | None = None,
) -> SessionSnapshot:
    """
    Explicit update trigger.

    Applies the patch, then unconditionally overwrites name, image, role and
    onboarded from the stored User. The id is never changed here.

    Raises:
        UserNotFoundError: The token's user no longer exists.
    """
    patched = apply_patch(snapshot, patch)
    user = await db.get(User, snapshot.id, populate_existing=True)
    if user is None:
        logger.warning("Session re-sync for missing user id=%s", snapshot.id)
        raise UserNotFoundError
    resynced = dataclasses.replace(
        patched,
        name=user.name,
        image=user.image,
        role=user.role,
        onboarded=user.onboarded,
    )
    if resynced != patched:
        logger.info("Session for user id=%s diverged from storage; storage wins", user.id)
    return resynced


def materialize(snapshot: SessionSnapshot) -> SessionResponse:
    """Pure projection of the token into the externally visible session."""
    return SessionResponse(
        user=SessionUser(
            id=snapshot.id,
            name=snapshot.name,
            image=snapshot.image,
            role=snapshot.role,
            onboarded=snapshot.onboarded,
        ),
    )


def issue_token(snapshot: SessionSnapshot) -> TokenResponse:
    """Sign a snapshot and return it alongside its materialized session."""
    return TokenResponse(
        access_token=encode_token(snapshot.to_claims()),
        session=materialize(snapshot),
    )


def read_token(token: str) -> SessionSnapshot | None:
    """Verify a bearer token; None when it is absent, invalid or expired."""
    claims = decode_token(token)
    if claims is None:
        return None
    return SessionSnapshot.from_claims(claims)
