"""In-process store adapters.

Used by the ``memory`` store backend (local development, single-process demos)
and by the engine test suite. All state lives on the instance; nothing is
module-global.
"""

from __future__ import annotations

import asyncio
import itertools
import uuid
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone

from discovery.domain import (
    ActivityEvent,
    Recommendation,
    RelationshipEdge,
    TrendingEntry,
    UnlockedAchievement,
)
from discovery.stores.base import (
    AchievementStore,
    ActivityStore,
    RecommendationStore,
    RelationshipStore,
    Stores,
    TrendingStore,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryRelationshipStore(RelationshipStore):
    def __init__(self) -> None:
        self._edges: dict[tuple[str, str], RelationshipEdge] = {}
        self._seq = itertools.count()
        self._order: dict[tuple[str, str], int] = {}

    async def add(self, follower_id: str, following_id: str) -> bool:
        key = (follower_id, following_id)
        if key in self._edges:
            return False
        self._edges[key] = RelationshipEdge(follower_id, following_id, _now())
        self._order[key] = next(self._seq)
        return True

    async def remove(self, follower_id: str, following_id: str) -> bool:
        key = (follower_id, following_id)
        if self._edges.pop(key, None) is None:
            return False
        self._order.pop(key, None)
        return True

    def _newest_first(self, keys: list[tuple[str, str]]) -> list[tuple[str, str]]:
        return sorted(keys, key=lambda k: self._order[k], reverse=True)

    async def followers(self, user_id: str) -> list[str]:
        keys = [k for k in self._edges if k[1] == user_id]
        return [follower for follower, _ in self._newest_first(keys)]

    async def following(self, user_id: str) -> list[str]:
        keys = [k for k in self._edges if k[0] == user_id]
        return [following for _, following in self._newest_first(keys)]

    async def get(self, follower_id: str, following_id: str) -> RelationshipEdge | None:
        return self._edges.get((follower_id, following_id))


class MemoryActivityStore(ActivityStore):
    def __init__(self, relationships: MemoryRelationshipStore) -> None:
        self._relationships = relationships
        self._events: list[ActivityEvent] = []

    async def append(self, event: ActivityEvent) -> ActivityEvent:
        stored = replace(event, id=str(uuid.uuid4()), metadata=dict(event.metadata))
        self._events.append(stored)
        return stored

    async def feed(self, user_id: str, visibilities: Sequence[str], limit: int) -> list[ActivityEvent]:
        followed = set(await self._relationships.following(user_id))
        allowed = set(visibilities)
        matches = [
            (idx, e) for idx, e in enumerate(self._events)
            if e.actor_user_id in followed and e.visibility in allowed
        ]
        # Insertion index breaks created_at ties so equal timestamps stay newest-first.
        matches.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [e for _, e in matches[:limit]]

    async def by_actor(self, user_id: str, limit: int) -> list[ActivityEvent]:
        matches = [(idx, e) for idx, e in enumerate(self._events) if e.actor_user_id == user_id]
        matches.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [e for _, e in matches[:limit]]


class MemoryRecommendationStore(RecommendationStore):
    def __init__(self) -> None:
        self._rows: dict[tuple[str, str, str], Recommendation] = {}
        self._lock = asyncio.Lock()

    async def upsert(self, recommendation: Recommendation) -> str:
        key = (recommendation.user_id, recommendation.item_id, recommendation.strategy)
        async with self._lock:
            existing = self._rows.get(key)
            row_id = existing.id if existing is not None else str(uuid.uuid4())
            self._rows[key] = replace(recommendation, id=row_id, metadata=dict(recommendation.metadata))
        return row_id

    async def list_live(self, user_id: str, strategy: str | None = None) -> list[Recommendation]:
        now = _now()
        rows = [
            r for (uid, _, strat), r in self._rows.items()
            if uid == user_id and (strategy is None or strat == strategy) and r.is_live(now)
        ]
        rows.sort(key=lambda r: r.match_score, reverse=True)
        return rows


class MemoryTrendingStore(TrendingStore):
    """Double-buffered snapshot.

    ``replace_all`` builds the next generation off to the side and then
    repoints ``_current`` in a single assignment; readers always hold a
    reference to one complete, immutable generation.
    """

    def __init__(self) -> None:
        self._current: tuple[TrendingEntry, ...] = ()
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    async def replace_all(self, entries: Sequence[TrendingEntry]) -> None:
        async with self._lock:
            staged = tuple(sorted(entries, key=lambda e: e.rank))
            self._current = staged
            self._generation += 1

    async def top(self, limit: int) -> list[TrendingEntry]:
        snapshot = self._current
        return list(snapshot[:limit])


class MemoryAchievementStore(AchievementStore):
    def __init__(self) -> None:
        self._unlocks: dict[tuple[str, str], UnlockedAchievement] = {}

    async def unlocked(self, user_id: str) -> list[UnlockedAchievement]:
        rows = [u for (uid, _), u in self._unlocks.items() if uid == user_id]
        rows.sort(key=lambda u: u.unlocked_at, reverse=True)
        return rows

    async def unlock(self, user_id: str, achievement_id: str) -> UnlockedAchievement | None:
        key = (user_id, achievement_id)
        if key in self._unlocks:
            return None
        unlock = UnlockedAchievement(user_id, achievement_id, _now())
        self._unlocks[key] = unlock
        return unlock


def build_memory_stores(trending: TrendingStore | None = None) -> Stores:
    """Bundle a fresh set of in-memory stores."""
    relationships = MemoryRelationshipStore()
    return Stores(
        relationships=relationships,
        activities=MemoryActivityStore(relationships),
        recommendations=MemoryRecommendationStore(),
        trending=trending or MemoryTrendingStore(),
        achievements=MemoryAchievementStore(),
    )
