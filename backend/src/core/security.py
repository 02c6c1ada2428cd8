"""Password hashing and session token signing."""
import hashlib
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from core.config import get_settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
)


def _prehash(password: str) -> str:
    # bcrypt only reads the first 72 bytes; a hex digest always fits
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt."""
    return pwd_context.hash(_prehash(password))


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a stored hash."""
    return pwd_context.verify(_prehash(password), hashed)


def dummy_verify() -> None:
    """Burn one bcrypt verification when there is no hash to check against."""
    pwd_context.dummy_verify()


def encode_token(claims: dict[str, Any], expires_in: timedelta | None = None) -> str:
    """Sign claims into a session token."""
    settings = get_settings()
    now = datetime.now(UTC)
    if expires_in is None:
        expires_in = timedelta(days=settings.session_max_age_days)
    payload = {**claims, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Verify a session token and return its claims.

    Returns None for any malformed, tampered or expired token.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
        )
    except JWTError as e:
        logger.debug("Rejected session token: %s", e)
        return None
