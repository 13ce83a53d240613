import os

# Must be set before social_feed.config builds its Settings singleton
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

from datetime import datetime, timedelta
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from social_feed.database import Database
from social_feed.main import create_app
from social_feed.models import Comment, Follow, Like, Post, User

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def _enforce_foreign_keys(dbapi_connection, connection_record):
    # MySQL enforces foreign keys; SQLite only does when asked
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def database():
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(db.engine.sync_engine, "connect", _enforce_foreign_keys)
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.sessionmaker() as s:
        yield s


class Seeder:
    """Commits fixture rows one unit of work at a time, bypassing services."""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def _add(self, obj):
        async with self.database.session() as s:
            s.add(obj)
            await s.flush()
            return obj.id

    async def user(self, username: str, full_name: Optional[str] = None, is_deleted: bool = False) -> int:
        return await self._add(
            User(username=username, full_name=full_name, password_hash="x", is_deleted=is_deleted)
        )

    async def post(
        self,
        user_id: int,
        content: str = "hello world",
        minutes: int = 0,
        is_deleted: bool = False,
        comments_enabled: bool = True,
    ) -> int:
        return await self._add(
            Post(
                user_id=user_id,
                content=content,
                created_at=BASE_TIME + timedelta(minutes=minutes),
                is_deleted=is_deleted,
                comments_enabled=comments_enabled,
            )
        )

    async def follow(self, follower_id: int, following_id: int) -> int:
        return await self._add(Follow(follower_id=follower_id, following_id=following_id))

    async def like(self, user_id: int, post_id: int) -> int:
        return await self._add(Like(user_id=user_id, post_id=post_id))

    async def comment(self, user_id: int, post_id: int, content: str = "nice", is_deleted: bool = False) -> int:
        return await self._add(
            Comment(user_id=user_id, post_id=post_id, content=content, is_deleted=is_deleted)
        )


@pytest.fixture
def seed(database) -> Seeder:
    return Seeder(database)


@pytest.fixture
def statements(database):
    """Records every SQL statement sent to the store."""
    recorded: list[str] = []

    def _before(conn, cursor, statement, parameters, context, executemany):
        recorded.append(statement)

    event.listen(database.engine.sync_engine, "before_cursor_execute", _before)
    try:
        yield recorded
    finally:
        event.remove(database.engine.sync_engine, "before_cursor_execute", _before)


@pytest_asyncio.fixture
async def api_client(database):
    app = create_app(database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
