"""Shared helpers for service-layer queries."""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import Base


def escape_like(value: str) -> str:
    r"""Escape LIKE wildcards so user input matches literally (use with escape='\\')."""
    return (
        value.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


async def insert_unless_conflict(db: AsyncSession, instance: Base) -> bool:
    """
    Insert a row inside a savepoint.

    Returns False when a unique constraint rejects it. Only the savepoint is
    rolled back, so the rest of the request's transaction survives.
    """
    try:
        async with db.begin_nested():
            db.add(instance)
            await db.flush()
    except IntegrityError:
        return False
    return True
