"""
Shared fixtures.

Every test gets its own in-memory SQLite database with the ORM schema created,
and the app's session dependency is pointed at it.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from api.main import app  # noqa: E402
from core.security import hash_password  # noqa: E402
from db.session import get_async_session  # noqa: E402
from models import Base, Post, Role, User  # noqa: E402
from services.session_service import issue_token, snapshot_from_user  # noqa: E402

DEFAULT_PASSWORD = "correct-horse"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session for calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, using the test database."""

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def create_user(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[User]]:
    """Factory that inserts a committed user."""
    counter = {"n": 0}

    async def _create(
        email: str | None = None,
        name: str = "Test User",
        password: str | None = DEFAULT_PASSWORD,
        role: Role = Role.READER,
        onboarded: bool = True,
        image: str | None = None,
    ) -> User:
        counter["n"] += 1
        async with session_factory() as db:
            user = User(
                email=email or f"user{counter['n']}@inkwell.io",
                name=name,
                image=image,
                password_hash=hash_password(password) if password else None,
                role=role,
                onboarded=onboarded,
            )
            db.add(user)
            await db.commit()
            return user

    return _create


@pytest.fixture
def create_post(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[Post]]:
    """Factory that inserts a committed post."""

    async def _create(
        owner: User,
        title: str = "Post",
        content: str = "Body",
        published: bool = True,
        created_at: datetime | None = None,
    ) -> Post:
        async with session_factory() as db:
            post = Post(
                title=title,
                content=content,
                published=published,
                created_by_id=owner.id,
            )
            if created_at is not None:
                post.created_at = created_at
            db.add(post)
            await db.commit()
            await db.refresh(post)
            return post

    return _create


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build a bearer header carrying a freshly issued session token for a user."""

    def _headers(user: User) -> dict[str, str]:
        token = issue_token(snapshot_from_user(user)).access_token
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def reader(create_user: Callable[..., Awaitable[User]]) -> User:
    """An onboarded reader."""
    return await create_user(name="Reader", role=Role.READER)


@pytest.fixture
async def publisher(create_user: Callable[..., Awaitable[User]]) -> User:
    """An onboarded publisher."""
    return await create_user(name="Publisher", role=Role.PUBLISHER)
