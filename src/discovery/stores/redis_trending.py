"""Redis-backed trending cache with generation double-buffering.

Each refresh writes the full snapshot under a new generation key and then
repoints ``trending:current`` with a single SET. The previous generation is
kept for a grace period so readers that already resolved the old pointer can
finish their read.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Sequence
from datetime import datetime

import structlog
from redis import exceptions as redis_exc
from redis.asyncio import Redis

from discovery.domain import TrendingEntry
from discovery.stores.base import TRANSIENT_ERRORS, TrendingStore, guarded

logger = structlog.get_logger()

CURRENT_KEY = "trending:current"
GENERATION_KEY_PREFIX = "trending:gen:"

REDIS_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    *TRANSIENT_ERRORS,
    redis_exc.ConnectionError,
    redis_exc.TimeoutError,
)


def generation_key(generation: str) -> str:
    return f"{GENERATION_KEY_PREFIX}{generation}"


def _encode(entries: Sequence[TrendingEntry]) -> str:
    return json.dumps([
        {
            "item_id": e.item_id,
            "velocity": e.velocity,
            "signups_24h": e.signups_24h,
            "signups_previous_24h": e.signups_previous_24h,
            "rank": e.rank,
            "category": e.category,
            "calculated_at": e.calculated_at.isoformat(),
        }
        for e in sorted(entries, key=lambda e: e.rank)
    ])


def _decode(payload: str) -> list[TrendingEntry]:
    return [
        TrendingEntry(
            item_id=d["item_id"],
            velocity=float(d["velocity"]),
            signups_24h=int(d["signups_24h"]),
            signups_previous_24h=int(d["signups_previous_24h"]),
            rank=int(d["rank"]),
            category=d.get("category"),
            calculated_at=datetime.fromisoformat(d["calculated_at"]),
        )
        for d in json.loads(payload)
    ]


class RedisTrendingStore(TrendingStore):
    def __init__(self, redis: Redis, timeout: float, grace_seconds: int = 60) -> None:
        self.redis = redis
        self._timeout = timeout
        self._grace_seconds = grace_seconds

    async def replace_all(self, entries: Sequence[TrendingEntry]) -> None:
        await guarded("trending.replace_all", self._replace_all(entries), self._timeout, REDIS_TRANSIENT_ERRORS)

    async def _replace_all(self, entries: Sequence[TrendingEntry]) -> None:
        generation = uuid.uuid4().hex
        await self.redis.set(generation_key(generation), _encode(entries))
        previous = await self.redis.set(CURRENT_KEY, generation, get=True)
        if previous and previous != generation:
            await self.redis.expire(generation_key(previous), self._grace_seconds)
        logger.info("trending_generation_swapped", generation=generation, previous=previous, entries=len(entries))

    async def top(self, limit: int) -> list[TrendingEntry]:
        return await guarded("trending.top", self._top(limit), self._timeout, REDIS_TRANSIENT_ERRORS)

    async def _top(self, limit: int) -> list[TrendingEntry]:
        generation = await self.redis.get(CURRENT_KEY)
        if not generation:
            return []
        payload = await self.redis.get(generation_key(generation))
        if payload is None:
            # Pointer moved and the old generation expired between our two reads.
            generation = await self.redis.get(CURRENT_KEY)
            payload = await self.redis.get(generation_key(generation)) if generation else None
            if payload is None:
                return []
        return _decode(payload)[:limit]
