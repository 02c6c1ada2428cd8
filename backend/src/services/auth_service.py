"""Service layer for identity: credentials, OAuth provisioning and profile changes."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.security import dummy_verify, hash_password, verify_password
from models.user import LinkedIdentity, Role, User
from schemas.auth import IdentitySnapshot, PasswordChange, ProfileResponse, RegisterRequest
from services.exceptions import (
    CurrentPasswordIncorrectError,
    CurrentPasswordRequiredError,
    EmailInUseError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from services.utils import insert_unless_conflict

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Look up a user by email."""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_linked_identity(
    db: AsyncSession, user_id: int, provider: str,
) -> LinkedIdentity | None:
    """The user's link to a provider, if one was recorded."""
    result = await db.execute(
        select(LinkedIdentity).where(
            LinkedIdentity.user_id == user_id,
            LinkedIdentity.provider == provider,
        ),
    )
    return result.scalar_one_or_none()


async def get_user_or_raise(db: AsyncSession, user_id: int) -> User:
    """Load the session's user, treating a missing row as a dead session."""
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError
    return user


async def register(db: AsyncSession, data: RegisterRequest) -> User:
    """
    Create a password account. Registration commits to a role, so the user is
    onboarded immediately.

    Raises:
        EmailInUseError: An account with this email already exists.
    """
    if await get_user_by_email(db, data.email) is not None:
        raise EmailInUseError

    user = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        role=data.role,
        onboarded=True,
    )
    if not await insert_unless_conflict(db, user):
        # Lost a race with a concurrent registration for the same email
        raise EmailInUseError
    logger.info("Registered user id=%s role=%s", user.id, user.role.value)
    return user


async def verify_credentials(db: AsyncSession, email: str, password: str) -> IdentitySnapshot:
    """
    Check an email and password.

    Raises:
        InvalidCredentialsError: For an unknown email, an account without a
            password, or a wrong password. The caller cannot tell which.
    """
    user = await get_user_by_email(db, email)
    if user is None or user.password_hash is None:
        # Spend the same bcrypt time as a real check
        dummy_verify()
        logger.info("Credential sign-in failed")
        raise InvalidCredentialsError
    if not verify_password(password, user.password_hash):
        logger.info("Credential sign-in failed")
        raise InvalidCredentialsError
    return IdentitySnapshot(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        onboarded=user.onboarded,
    )


async def resolve_oauth_identity(
    db: AsyncSession,
    provider: str,
    email: str,
    name: str | None = None,
    provider_account_id: str | None = None,
) -> User:
    """
    Find or create the user a third-party provider vouched for.

    A new user starts as a non-onboarded READER without a password, named after
    the email when the provider gave no name. An existing user is reused without
    overwriting any field. Either way a LinkedIdentity row is recorded for the
    provider so profile reads can list it.

    Concurrent first sign-ins for the same email converge on one user: the
    loser of the unique-email insert reuses the winner's row.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        candidate = User(
            name=name or email,
            email=email,
            password_hash=None,
            role=Role.READER,
            onboarded=False,
        )
        if await insert_unless_conflict(db, candidate):
            user = candidate
            logger.info("Provisioned user id=%s on first %s sign-in", user.id, provider)
        else:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one()
            logger.info("Concurrent %s sign-in resolved to user id=%s", provider, user.id)

    if await get_linked_identity(db, user.id, provider) is None:
        identity = LinkedIdentity(
            user_id=user.id,
            provider=provider,
            provider_account_id=provider_account_id,
        )
        # A concurrent sign-in may have linked it first; either row will do
        if await insert_unless_conflict(db, identity):
            logger.info("Linked %s identity to user id=%s", provider, user.id)
    return user


async def set_role(db: AsyncSession, user_id: int, role: Role) -> Role:
    """Commit the onboarding role choice."""
    user = await get_user_or_raise(db, user_id)
    user.role = role
    user.onboarded = True
    await db.flush()
    logger.info("User id=%s chose role %s", user_id, role.value)
    return role


async def get_profile(db: AsyncSession, user_id: int) -> ProfileResponse:
    """Read the profile, with linked provider names and whether a password is set."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.identities)),
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError
    return ProfileResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        image=user.image,
        role=user.role,
        has_password=user.password_hash is not None,
        providers=sorted(identity.provider for identity in user.identities),
    )


async def update_name(db: AsyncSession, user_id: int, name: str) -> None:
    """Change the display name."""
    user = await get_user_or_raise(db, user_id)
    user.name = name
    await db.flush()


async def update_image(db: AsyncSession, user_id: int, image: str | None) -> None:
    """Point the avatar at a stored blob URL, or clear it."""
    user = await get_user_or_raise(db, user_id)
    user.image = image
    await db.flush()


async def change_password(db: AsyncSession, user_id: int, data: PasswordChange) -> None:
    """
    Set or change the password.

    Accounts created through OAuth have no password and may set one directly;
    otherwise the current password must be supplied and correct.

    Raises:
        CurrentPasswordRequiredError: A password exists and none was supplied.
        CurrentPasswordIncorrectError: The supplied current password is wrong.
    """
    user = await get_user_or_raise(db, user_id)
    if user.password_hash is not None:
        if not data.current_password:
            raise CurrentPasswordRequiredError
        if not verify_password(data.current_password, user.password_hash):
            raise CurrentPasswordIncorrectError
    user.password_hash = hash_password(data.new_password)
    await db.flush()
    logger.info("Password updated for user id=%s", user_id)
