"""Database engine and the request-scoped unit of work."""
import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine; SQL echo follows DEBUG logging."""
    return create_async_engine(
        settings.database_url,
        echo=settings.log_level.upper() == "DEBUG",
        pool_pre_ping=True,
    )


engine = build_engine(get_settings())

# Rows stay readable after commit so responses can be built from them
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request.

    Everything a handler writes commits together when it returns. Any error,
    including an AppError raised by a service, rolls the whole request back.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.debug("Request rolled back after %s", type(exc).__name__)
            raise
