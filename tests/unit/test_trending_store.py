"""Trending snapshot stores and the refresh service."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from discovery.domain import TrendingEntry
from discovery.errors import TransientStoreError
from discovery.stores.memory import MemoryTrendingStore
from discovery.stores.redis_trending import CURRENT_KEY, RedisTrendingStore, generation_key
from discovery.trending.service import TrendingService

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _snapshot(prefix: str, size: int) -> list[TrendingEntry]:
    return [
        TrendingEntry(
            item_id=f"{prefix}_{rank}",
            velocity=float(size - rank + 1),
            signups_24h=rank,
            signups_previous_24h=1,
            rank=rank,
            category=None,
            calculated_at=NOW,
        )
        for rank in range(1, size + 1)
    ]


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the trending store."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiries: dict[str, int] = {}
        self.fail = False

    async def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.data.get(key)

    async def set(self, key, value, get=False):
        if self.fail:
            raise ConnectionError("redis down")
        previous = self.data.get(key)
        self.data[key] = value
        return previous if get else True

    async def expire(self, key, seconds):
        self.expiries[key] = seconds
        return True


class TestMemoryTrendingStore:
    """Double-buffered in-process snapshot."""

    @pytest.mark.asyncio
    async def test_empty_before_first_refresh(self):
        assert await MemoryTrendingStore().top(10) == []

    @pytest.mark.asyncio
    async def test_replace_swaps_whole_snapshot(self):
        store = MemoryTrendingStore()
        await store.replace_all(_snapshot("old", 5))
        await store.replace_all(_snapshot("new", 3))

        top = await store.top(10)
        assert [e.item_id for e in top] == ["new_1", "new_2", "new_3"]
        assert store.generation == 2

    @pytest.mark.asyncio
    async def test_top_ordered_by_rank(self):
        store = MemoryTrendingStore()
        await store.replace_all(list(reversed(_snapshot("c", 4))))
        assert [e.rank for e in await store.top(4)] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_readers_never_see_partial_snapshot(self):
        store = MemoryTrendingStore()
        await store.replace_all(_snapshot("gen0", 20))
        observed: list[list[TrendingEntry]] = []

        async def writer():
            for gen in range(1, 30):
                await store.replace_all(_snapshot(f"gen{gen}", 20))
                await asyncio.sleep(0)

        async def reader():
            for _ in range(60):
                observed.append(await store.top(100))
                await asyncio.sleep(0)

        await asyncio.gather(writer(), reader(), reader())

        for snapshot in observed:
            assert len(snapshot) == 20
            assert len({e.item_id.split("_")[0] for e in snapshot}) == 1


class TestRedisTrendingStore:
    """Generation keys plus a single pointer swap."""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        store = RedisTrendingStore(FakeRedis(), timeout=1.0)
        await store.replace_all(_snapshot("c", 3))

        top = await store.top(2)
        assert [e.item_id for e in top] == ["c_1", "c_2"]
        assert top[0].calculated_at == NOW

    @pytest.mark.asyncio
    async def test_previous_generation_gets_grace_expiry(self):
        redis = FakeRedis()
        store = RedisTrendingStore(redis, timeout=1.0, grace_seconds=30)
        await store.replace_all(_snapshot("old", 2))
        first = redis.data[CURRENT_KEY]
        await store.replace_all(_snapshot("new", 2))

        assert redis.data[CURRENT_KEY] != first
        assert redis.expiries == {generation_key(first): 30}
        assert [e.item_id for e in await store.top(5)] == ["new_1", "new_2"]

    @pytest.mark.asyncio
    async def test_empty_without_pointer(self):
        assert await RedisTrendingStore(FakeRedis(), timeout=1.0).top(5) == []

    @pytest.mark.asyncio
    async def test_connection_failure_is_transient(self):
        redis = FakeRedis()
        redis.fail = True
        store = RedisTrendingStore(redis, timeout=1.0)
        with pytest.raises(TransientStoreError):
            await store.top(5)


class TestTrendingService:
    """refresh() reads the last 48 hours of starts."""

    @pytest.mark.asyncio
    async def test_refresh_replaces_cache(self, progress):
        store = MemoryTrendingStore()
        progress.start("u1", "hot", at=NOW - timedelta(hours=1), category="ai")
        progress.start("u2", "hot", at=NOW - timedelta(hours=2))
        progress.start("u3", "cold", at=NOW - timedelta(hours=30))
        progress.start("u4", "ancient", at=NOW - timedelta(days=5))
        service = TrendingService(store, progress)

        snapshot = await service.refresh(NOW)

        assert [e.item_id for e in snapshot] == ["hot"]
        assert snapshot[0].category == "ai"
        assert await service.top() == snapshot

    @pytest.mark.asyncio
    async def test_top_clamps_limit(self, progress):
        store = MemoryTrendingStore()
        await store.replace_all(_snapshot("c", 8))
        service = TrendingService(store, progress, snapshot_size=6, read_limit=4)

        assert len(await service.top()) == 4
        assert len(await service.top(0)) == 4
        assert len(await service.top(100)) == 6
