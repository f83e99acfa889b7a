"""Achievement evaluation and unlocking."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from redis.asyncio import Redis

from discovery.achievements.catalog import CATALOG, AchievementDefinition
from discovery.domain import ACTIVITY_ACHIEVEMENT_EARNED, UnlockedAchievement
from discovery.errors import DiscoveryError, NotFoundError, ValidationError
from discovery.providers.base import ProgressProvider
from discovery.social.activity import ActivityLedger
from discovery.stores.base import AchievementStore, guarded
from discovery.stores.redis_trending import REDIS_TRANSIENT_ERRORS

logger = logging.getLogger(__name__)

ACHIEVEMENT_CHANNEL = "pubsub:achievement_earned"


@dataclass(frozen=True)
class EarnedAchievement:
    """An unlock joined with its definition."""

    definition: AchievementDefinition
    unlocked_at: datetime
    new: bool = False


class AchievementEvaluator:
    def __init__(
        self,
        store: AchievementStore,
        progress: ProgressProvider,
        ledger: ActivityLedger,
        redis: Redis | None = None,
        catalog: Sequence[AchievementDefinition] = CATALOG,
        timeout: float = 5.0,
    ) -> None:
        self.store = store
        self.progress = progress
        self.ledger = ledger
        self.redis = redis
        self.catalog = tuple(catalog)
        self._by_id = {d.id: d for d in self.catalog}
        self._timeout = timeout

    def _earned(self, unlocks: Sequence[UnlockedAchievement], new: bool = False) -> list[EarnedAchievement]:
        return [
            EarnedAchievement(self._by_id[u.achievement_id], u.unlocked_at, new)
            for u in unlocks
            if u.achievement_id in self._by_id
        ]

    async def unlocked(self, user_id: str) -> list[EarnedAchievement]:
        return self._earned(await self.store.unlocked(user_id))

    async def evaluate(self, user_id: str) -> list[EarnedAchievement]:
        """Unlock every achievement whose criteria now pass.

        Returns the previously unlocked achievements followed by the new ones.
        Unlocks are write-once, so re-running never re-emits an activity.
        """
        if not user_id:
            raise ValidationError("user_id is required")

        existing = await self.store.unlocked(user_id)
        held = {u.achievement_id for u in existing}
        stats = await self.progress.behavioral_snapshot(user_id)

        fresh: list[UnlockedAchievement] = []
        for definition in self.catalog:
            if definition.id in held or not definition.is_met(stats):
                continue
            try:
                unlock = await self.store.unlock(user_id, definition.id)
            except DiscoveryError:
                logger.warning("Failed to unlock %s for user %s", definition.id, user_id, exc_info=True)
                continue
            if unlock is None:
                # Another evaluation got there first.
                continue
            fresh.append(unlock)
            await self._announce(user_id, definition)

        if fresh:
            logger.info("User %s unlocked %d achievement(s)", user_id, len(fresh))
        return self._earned(existing) + self._earned(fresh, new=True)

    async def unlock(self, user_id: str, achievement_id: str) -> EarnedAchievement:
        """Manually unlock one achievement. Already unlocked is a no-op."""
        if not user_id:
            raise ValidationError("user_id is required")
        definition = self._by_id.get(achievement_id)
        if definition is None:
            raise NotFoundError(f"Unknown achievement: {achievement_id}")

        unlock = await self.store.unlock(user_id, achievement_id)
        if unlock is None:
            current = next(u for u in await self.store.unlocked(user_id) if u.achievement_id == achievement_id)
            return EarnedAchievement(definition, current.unlocked_at)

        await self._announce(user_id, definition)
        return EarnedAchievement(definition, unlock.unlocked_at, new=True)

    async def _announce(self, user_id: str, definition: AchievementDefinition) -> None:
        try:
            await self.ledger.broadcast(
                user_id,
                ACTIVITY_ACHIEVEMENT_EARNED,
                {
                    "achievement_id": definition.id,
                    "achievement_name": definition.name,
                    "rarity": definition.rarity,
                },
            )
        except DiscoveryError:
            logger.warning("Failed to record achievement activity for user %s", user_id, exc_info=True)

        if self.redis is not None:
            try:
                message = json.dumps({
                    "user_id": user_id,
                    "achievement_id": definition.id,
                    "achievement_name": definition.name,
                    "rarity": definition.rarity,
                })
                await guarded(
                    "achievements.publish",
                    self.redis.publish(ACHIEVEMENT_CHANNEL, message),
                    self._timeout,
                    REDIS_TRANSIENT_ERRORS,
                )
            except Exception:
                logger.warning("Failed to publish achievement_earned notification", exc_info=True)
