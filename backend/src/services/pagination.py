"""
Keyset pagination over time-ordered collections.

Rows are ordered by (created_at desc, id desc). The cursor is the id of the last
row the caller received; the next page starts strictly after that row. One extra
row is fetched to tell whether another page exists without a count query.
"""
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50


@dataclass
class Page(Generic[T]):
    """One page of rows and the cursor for the next, or None at the end."""

    rows: Sequence[T]
    next_cursor: int | None


def after_cursor(
    query: Select[Any],
    order_column: InstrumentedAttribute,
    id_column: InstrumentedAttribute,
    cursor: int,
) -> Select[Any]:
    """
    Restrict a query to rows strictly after the cursor row.

    The cursor row's sort key is looked up in a scalar subquery, so an unknown
    cursor compares against NULL and matches nothing.
    """
    anchor = (
        select(order_column)
        .where(id_column == cursor)
        .scalar_subquery()
    )
    return query.where(
        or_(
            order_column < anchor,
            and_(order_column == anchor, id_column < cursor),
        ),
    )


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    *,
    order_column: InstrumentedAttribute,
    id_column: InstrumentedAttribute,
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: int | None = None,
) -> Page[Any]:
    """
    Fetch one page of a single-entity select.

    Args:
        db: Database session.
        query: Select of one ORM entity with any filters already applied.
        order_column: Sort key, newest first.
        id_column: Unique tie-breaker and cursor identity.
        limit: Page size.
        cursor: Id of the last row returned by the previous call.

    Returns:
        Page with at most `limit` rows; next_cursor is the id of the last row
        when more rows exist, else None.
    """
    if cursor is not None:
        query = after_cursor(query, order_column, id_column, cursor)
    query = query.order_by(order_column.desc(), id_column.desc()).limit(limit + 1)

    result = await db.execute(query)
    rows = list(result.scalars().all())

    next_cursor = None
    if len(rows) > limit:
        rows = rows[:limit]
        next_cursor = getattr(rows[-1], id_column.key)
    return Page(rows=rows, next_cursor=next_cursor)
