"""Unit test fixtures - in-memory SQLite database with users, posts and tags."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sample_models import Base, Post, Tag, User, post_tags


@dataclass
class Seeded:
    alice: User
    bob: User
    carol: User
    tags: list[Tag]

    @property
    def users(self) -> list[User]:
        return [self.alice, self.bob, self.carol]


@pytest.fixture()
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def statements(engine):
    """SQL statements executed on the engine, in order."""
    executed: list[str] = []

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def record(conn, cursor, statement, parameters, context, executemany):
        executed.append(statement)

    return executed


@pytest.fixture()
async def session(engine):
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture()
async def seeded(session) -> Seeded:
    """
    alice: 5 posts (a1..a5, a2 and a4 unpublished)
    bob: 2 posts (b1, b2 unpublished)
    carol: no posts

    a1 is tagged python ("first") and sql ("second"), a2 is tagged sql ("again").
    """
    session.add_all([
        User(id=1, name="alice"),
        User(id=2, name="bob"),
        User(id=3, name="carol"),
        Tag(id=1, name="python"),
        Tag(id=2, name="sql"),
        Tag(id=3, name="unused"),
    ])
    session.add_all([
        Post(id=index, title=f"a{index}", published=index % 2 == 1, author_id=1)
        for index in range(1, 6)
    ])
    session.add_all([
        Post(id=6, title="b1", published=True, author_id=2),
        Post(id=7, title="b2", published=False, author_id=2),
    ])
    await session.flush()
    await session.execute(post_tags.insert().values([
        {"post_id": 1, "tag_id": 1, "note": "first"},
        {"post_id": 1, "tag_id": 2, "note": "second"},
        {"post_id": 2, "tag_id": 2, "note": "again"},
    ]))
    await session.commit()
    session.expunge_all()

    users = (await session.execute(select(User).order_by(User.id))).scalars().all()
    tags = (await session.execute(select(Tag).order_by(Tag.id))).scalars().all()
    return Seeded(alice=users[0], bob=users[1], carol=users[2], tags=list(tags))
