"""SQL store adapters against a real PostgreSQL.

Skipped unless DSC_TEST_DATABASE_URL points at a reachable database. The
engine tables are created before and dropped after every test.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from discovery.db import models  # noqa: F401
from discovery.db.base import Base
from discovery.domain import (
    STRATEGY_TRENDING,
    VISIBILITY_FRIENDS,
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
    ActivityEvent,
    Recommendation,
    TrendingEntry,
)
from discovery.stores.sql import build_sql_stores

pytestmark = pytest.mark.asyncio

NOW = datetime.now(timezone.utc)


@pytest_asyncio.fixture
async def pg_stores() -> AsyncGenerator:
    url = os.environ.get("DSC_TEST_DATABASE_URL")
    if not url:
        pytest.skip("DSC_TEST_DATABASE_URL not set")

    engine = create_async_engine(url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except OSError as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL unreachable: {exc}")

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield build_sql_stores(factory, timeout=5.0)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


def _event(actor: str, visibility: str, minutes_ago: int) -> ActivityEvent:
    return ActivityEvent(
        actor_user_id=actor,
        activity_type="course_completed",
        visibility=visibility,
        created_at=NOW - timedelta(minutes=minutes_ago),
        metadata={"course_id": f"c{minutes_ago}"},
    )


class TestSqlRelationships:
    async def test_add_is_idempotent(self, pg_stores):
        assert await pg_stores.relationships.add("alice", "bob") is True
        assert await pg_stores.relationships.add("alice", "bob") is False
        assert await pg_stores.relationships.followers("bob") == ["alice"]

    async def test_remove(self, pg_stores):
        await pg_stores.relationships.add("alice", "bob")
        assert await pg_stores.relationships.remove("alice", "bob") is True
        assert await pg_stores.relationships.remove("alice", "bob") is False
        assert await pg_stores.relationships.get("alice", "bob") is None


class TestSqlActivity:
    async def test_feed_filters_and_orders(self, pg_stores):
        await pg_stores.relationships.add("alice", "bob")
        await pg_stores.activities.append(_event("bob", VISIBILITY_PUBLIC, 10))
        await pg_stores.activities.append(_event("bob", VISIBILITY_FRIENDS, 5))
        await pg_stores.activities.append(_event("bob", VISIBILITY_PRIVATE, 1))
        await pg_stores.activities.append(_event("carol", VISIBILITY_PUBLIC, 1))

        feed = await pg_stores.activities.feed("alice", (VISIBILITY_PUBLIC, VISIBILITY_FRIENDS), 10)
        assert [e.metadata["course_id"] for e in feed] == ["c5", "c10"]
        assert all(e.id for e in feed)


class TestSqlRecommendations:
    async def test_upsert_keeps_one_row(self, pg_stores):
        rec = Recommendation(
            user_id="alice", item_id="c1", strategy=STRATEGY_TRENDING, match_score=40,
            reason="first", created_at=NOW, expires_at=NOW + timedelta(hours=1),
        )
        first_id = await pg_stores.recommendations.upsert(rec)
        rec.match_score = 70
        rec.reason = "second"
        second_id = await pg_stores.recommendations.upsert(rec)

        rows = await pg_stores.recommendations.list_live("alice")
        assert first_id == second_id
        assert [(r.match_score, r.reason) for r in rows] == [(70, "second")]

    async def test_expired_rows_hidden(self, pg_stores):
        await pg_stores.recommendations.upsert(Recommendation(
            user_id="alice", item_id="c1", strategy=STRATEGY_TRENDING, match_score=40,
            reason="stale", created_at=NOW - timedelta(days=2), expires_at=NOW - timedelta(days=1),
        ))
        assert await pg_stores.recommendations.list_live("alice") == []


class TestSqlTrending:
    async def test_replace_all(self, pg_stores):
        def snapshot(prefix):
            return [
                TrendingEntry(f"{prefix}{rank}", 2.0, 4, 2, rank, None, NOW) for rank in (1, 2)
            ]

        await pg_stores.trending.replace_all(snapshot("old"))
        await pg_stores.trending.replace_all(snapshot("new"))
        assert [e.item_id for e in await pg_stores.trending.top(10)] == ["new1", "new2"]

    async def test_concurrent_refreshes_take_turns(self, pg_stores):
        def snapshot(prefix):
            return [TrendingEntry(f"{prefix}{rank}", 2.0, 4, 2, rank, None, NOW) for rank in (1, 2, 3)]

        await asyncio.gather(*(pg_stores.trending.replace_all(snapshot(p)) for p in ("a", "b", "c")))

        top = await pg_stores.trending.top(10)
        assert [e.rank for e in top] == [1, 2, 3]
        assert len({e.item_id[0] for e in top}) == 1


class TestSqlAchievements:
    async def test_unlock_once(self, pg_stores):
        first = await pg_stores.achievements.unlock("alice", "first_module")
        assert first is not None
        assert await pg_stores.achievements.unlock("alice", "first_module") is None
        assert [u.achievement_id for u in await pg_stores.achievements.unlocked("alice")] == ["first_module"]
