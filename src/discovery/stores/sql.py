"""PostgreSQL store adapters (SQLAlchemy async).

Every public method is one unit of work: it opens its own session, runs inside
``session.begin()`` and commits before returning. A batch caller that fails
half way therefore keeps everything written up to the failure.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import delete, insert, or_, select, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from discovery.db.models import (
    ActivityFeedEntry,
    RecommendationRow,
    TrendingCourse,
    UserAchievement,
    UserRelationship,
)
from discovery.domain import (
    ActivityEvent,
    Recommendation,
    RelationshipEdge,
    TrendingEntry,
    UnlockedAchievement,
)
from discovery.stores.base import (
    TRANSIENT_ERRORS,
    AchievementStore,
    ActivityStore,
    RecommendationStore,
    RelationshipStore,
    Stores,
    TrendingStore,
    guarded,
)

T = TypeVar("T")

SQL_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    *TRANSIENT_ERRORS,
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.TimeoutError,
)


class SqlUnitOfWork:
    """Runs each call as its own guarded transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], timeout: float) -> None:
        self._session_factory = session_factory
        self._timeout = timeout

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _unit() -> T:
            async with self._session_factory() as session, session.begin():
                return await work(session)

        return await guarded(operation, _unit(), self._timeout, SQL_TRANSIENT_ERRORS)


# ---------------------------------------------------------------------------
# Social graph
# ---------------------------------------------------------------------------


class SqlRelationshipStore(SqlUnitOfWork, RelationshipStore):
    async def add(self, follower_id: str, following_id: str) -> bool:
        async def work(session: AsyncSession) -> bool:
            stmt = (
                pg_insert(UserRelationship)
                .values(
                    id=str(uuid.uuid4()),
                    follower_id=follower_id,
                    following_id=following_id,
                    created_at=datetime.now(timezone.utc),
                )
                .on_conflict_do_nothing(constraint="uq_user_relationships_pair")
                .returning(UserRelationship.id)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

        return await self._run("relationships.add", work)

    async def remove(self, follower_id: str, following_id: str) -> bool:
        async def work(session: AsyncSession) -> bool:
            result = await session.execute(
                delete(UserRelationship)
                .where(
                    UserRelationship.follower_id == follower_id,
                    UserRelationship.following_id == following_id,
                )
                .returning(UserRelationship.id)
            )
            return result.scalar_one_or_none() is not None

        return await self._run("relationships.remove", work)

    async def followers(self, user_id: str) -> list[str]:
        async def work(session: AsyncSession) -> list[str]:
            result = await session.execute(
                select(UserRelationship.follower_id)
                .where(UserRelationship.following_id == user_id)
                .order_by(UserRelationship.created_at.desc())
            )
            return list(result.scalars().all())

        return await self._run("relationships.followers", work)

    async def following(self, user_id: str) -> list[str]:
        async def work(session: AsyncSession) -> list[str]:
            result = await session.execute(
                select(UserRelationship.following_id)
                .where(UserRelationship.follower_id == user_id)
                .order_by(UserRelationship.created_at.desc())
            )
            return list(result.scalars().all())

        return await self._run("relationships.following", work)

    async def get(self, follower_id: str, following_id: str) -> RelationshipEdge | None:
        async def work(session: AsyncSession) -> RelationshipEdge | None:
            result = await session.execute(
                select(UserRelationship).where(
                    UserRelationship.follower_id == follower_id,
                    UserRelationship.following_id == following_id,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return RelationshipEdge(row.follower_id, row.following_id, row.created_at)

        return await self._run("relationships.get", work)


# ---------------------------------------------------------------------------
# Activity ledger
# ---------------------------------------------------------------------------


def _to_event(row: ActivityFeedEntry) -> ActivityEvent:
    return ActivityEvent(
        id=row.id,
        actor_user_id=row.user_id,
        activity_type=row.activity_type,
        reference_type=row.reference_type,
        reference_id=row.reference_id,
        metadata=row.activity_metadata or {},
        visibility=row.visibility,
        created_at=row.created_at,
    )


class SqlActivityStore(SqlUnitOfWork, ActivityStore):
    async def append(self, event: ActivityEvent) -> ActivityEvent:
        async def work(session: AsyncSession) -> ActivityEvent:
            row = ActivityFeedEntry(
                id=str(uuid.uuid4()),
                user_id=event.actor_user_id,
                activity_type=event.activity_type,
                reference_type=event.reference_type,
                reference_id=event.reference_id,
                activity_metadata=dict(event.metadata),
                visibility=event.visibility,
                created_at=event.created_at,
            )
            session.add(row)
            await session.flush()
            return _to_event(row)

        return await self._run("activities.append", work)

    async def feed(self, user_id: str, visibilities: Sequence[str], limit: int) -> list[ActivityEvent]:
        async def work(session: AsyncSession) -> list[ActivityEvent]:
            result = await session.execute(
                select(ActivityFeedEntry)
                .join(UserRelationship, ActivityFeedEntry.user_id == UserRelationship.following_id)
                .where(
                    UserRelationship.follower_id == user_id,
                    ActivityFeedEntry.visibility.in_(list(visibilities)),
                )
                .order_by(ActivityFeedEntry.created_at.desc())
                .limit(limit)
            )
            return [_to_event(row) for row in result.scalars()]

        return await self._run("activities.feed", work)

    async def by_actor(self, user_id: str, limit: int) -> list[ActivityEvent]:
        async def work(session: AsyncSession) -> list[ActivityEvent]:
            result = await session.execute(
                select(ActivityFeedEntry)
                .where(ActivityFeedEntry.user_id == user_id)
                .order_by(ActivityFeedEntry.created_at.desc())
                .limit(limit)
            )
            return [_to_event(row) for row in result.scalars()]

        return await self._run("activities.by_actor", work)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class SqlRecommendationStore(SqlUnitOfWork, RecommendationStore):
    async def upsert(self, recommendation: Recommendation) -> str:
        async def work(session: AsyncSession) -> str:
            table = RecommendationRow.__table__
            stmt = pg_insert(table).values(
                id=str(uuid.uuid4()),
                user_id=recommendation.user_id,
                course_id=recommendation.item_id,
                recommendation_type=recommendation.strategy,
                match_score=recommendation.match_score,
                reason=recommendation.reason,
                metadata=dict(recommendation.metadata),
                created_at=recommendation.created_at,
                expires_at=recommendation.expires_at,
            )
            stmt = stmt.on_conflict_do_update(
                constraint="uq_recommendations_user_course_type",
                set_={
                    "match_score": stmt.excluded.match_score,
                    "reason": stmt.excluded.reason,
                    "metadata": stmt.excluded["metadata"],
                    "created_at": stmt.excluded.created_at,
                    "expires_at": stmt.excluded.expires_at,
                },
            ).returning(table.c.id)
            result = await session.execute(stmt)
            return result.scalar_one()

        return await self._run("recommendations.upsert", work)

    async def list_live(self, user_id: str, strategy: str | None = None) -> list[Recommendation]:
        async def work(session: AsyncSession) -> list[Recommendation]:
            now = datetime.now(timezone.utc)
            query = select(RecommendationRow).where(
                RecommendationRow.user_id == user_id,
                or_(RecommendationRow.expires_at.is_(None), RecommendationRow.expires_at > now),
            )
            if strategy is not None:
                query = query.where(RecommendationRow.recommendation_type == strategy)
            result = await session.execute(query.order_by(RecommendationRow.match_score.desc()))
            return [
                Recommendation(
                    id=row.id,
                    user_id=row.user_id,
                    item_id=row.course_id,
                    strategy=row.recommendation_type,
                    match_score=row.match_score,
                    reason=row.reason,
                    metadata=row.rec_metadata or {},
                    created_at=row.created_at,
                    expires_at=row.expires_at,
                )
                for row in result.scalars()
            ]

        return await self._run("recommendations.list_live", work)


# ---------------------------------------------------------------------------
# Trending cache
# ---------------------------------------------------------------------------


_LOCK_TRENDING = text("LOCK TABLE trending_courses IN EXCLUSIVE MODE")


class SqlTrendingStore(SqlUnitOfWork, TrendingStore):
    """Delete + bulk insert inside one transaction.

    PostgreSQL MVCC keeps the previous snapshot visible to concurrent readers
    until the transaction commits. Concurrent refreshes take turns on an
    EXCLUSIVE table lock, which still admits plain SELECTs.
    """

    async def replace_all(self, entries: Sequence[TrendingEntry]) -> None:
        async def work(session: AsyncSession) -> None:
            await session.execute(_LOCK_TRENDING)
            await session.execute(delete(TrendingCourse))
            if entries:
                await session.execute(
                    insert(TrendingCourse),
                    [
                        {
                            "id": str(uuid.uuid4()),
                            "course_id": e.item_id,
                            "velocity": e.velocity,
                            "signups_24h": e.signups_24h,
                            "signups_previous_24h": e.signups_previous_24h,
                            "rank": e.rank,
                            "meta_category": e.category,
                            "calculated_at": e.calculated_at,
                        }
                        for e in entries
                    ],
                )

        await self._run("trending.replace_all", work)

    async def top(self, limit: int) -> list[TrendingEntry]:
        async def work(session: AsyncSession) -> list[TrendingEntry]:
            result = await session.execute(
                select(TrendingCourse).order_by(TrendingCourse.rank.asc()).limit(limit)
            )
            return [
                TrendingEntry(
                    item_id=row.course_id,
                    velocity=float(row.velocity),
                    signups_24h=row.signups_24h,
                    signups_previous_24h=row.signups_previous_24h,
                    rank=row.rank,
                    category=row.meta_category,
                    calculated_at=row.calculated_at,
                )
                for row in result.scalars()
            ]

        return await self._run("trending.top", work)


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class SqlAchievementStore(SqlUnitOfWork, AchievementStore):
    async def unlocked(self, user_id: str) -> list[UnlockedAchievement]:
        async def work(session: AsyncSession) -> list[UnlockedAchievement]:
            result = await session.execute(
                select(UserAchievement)
                .where(UserAchievement.user_id == user_id)
                .order_by(UserAchievement.unlocked_at.desc())
            )
            return [
                UnlockedAchievement(row.user_id, row.achievement_id, row.unlocked_at)
                for row in result.scalars()
            ]

        return await self._run("achievements.unlocked", work)

    async def unlock(self, user_id: str, achievement_id: str) -> UnlockedAchievement | None:
        async def work(session: AsyncSession) -> UnlockedAchievement | None:
            stmt = (
                pg_insert(UserAchievement)
                .values(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    achievement_id=achievement_id,
                    unlocked_at=datetime.now(timezone.utc),
                )
                .on_conflict_do_nothing(constraint="uq_user_achievements_user_achievement")
                .returning(UserAchievement.unlocked_at)
            )
            result = await session.execute(stmt)
            unlocked_at = result.scalar_one_or_none()
            if unlocked_at is None:
                return None
            return UnlockedAchievement(user_id, achievement_id, unlocked_at)

        return await self._run("achievements.unlock", work)


def build_sql_stores(
    session_factory: async_sessionmaker[AsyncSession],
    timeout: float,
    trending: TrendingStore | None = None,
) -> Stores:
    """Bundle the PostgreSQL stores, optionally with a different trending backend."""
    return Stores(
        relationships=SqlRelationshipStore(session_factory, timeout),
        activities=SqlActivityStore(session_factory, timeout),
        recommendations=SqlRecommendationStore(session_factory, timeout),
        trending=trending or SqlTrendingStore(session_factory, timeout),
        achievements=SqlAchievementStore(session_factory, timeout),
    )
