"""Trending cache refresh and reads."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from discovery.domain import TrendingEntry
from discovery.providers.base import ProgressProvider
from discovery.stores.base import TrendingStore
from discovery.trending.velocity import COLD_START_VELOCITY, WINDOW, build_snapshot

logger = structlog.get_logger()


class TrendingService:
    def __init__(
        self,
        store: TrendingStore,
        progress: ProgressProvider,
        snapshot_size: int = 100,
        read_limit: int = 50,
        cold_start_velocity: float = COLD_START_VELOCITY,
    ) -> None:
        self.store = store
        self.progress = progress
        self.snapshot_size = snapshot_size
        self.read_limit = read_limit
        self.cold_start_velocity = cold_start_velocity

    async def refresh(self, now: datetime | None = None) -> list[TrendingEntry]:
        """Recompute velocities over the last 48 hours and replace the cache."""
        now = now or datetime.now(timezone.utc)
        enrollments = await self.progress.recent_enrollments(now - 2 * WINDOW)
        snapshot = build_snapshot(enrollments, now, self.snapshot_size, self.cold_start_velocity)
        await self.store.replace_all(snapshot)
        logger.info("trending_refreshed", entries=len(snapshot), enrollments=len(enrollments))
        return snapshot

    async def top(self, limit: int | None = None) -> list[TrendingEntry]:
        if limit is None or limit <= 0:
            limit = self.read_limit
        return await self.store.top(min(limit, self.snapshot_size))
