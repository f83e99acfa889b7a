"""Directed follow graph."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from discovery.domain import ACTIVITY_USER_FOLLOWED, VISIBILITY_PRIVATE, ActivityEvent
from discovery.errors import DiscoveryError, NotFoundError, ValidationError
from discovery.social.activity import ActivityLedger
from discovery.stores.base import RelationshipStore

logger = logging.getLogger(__name__)


class SocialGraph:
    def __init__(self, store: RelationshipStore, ledger: ActivityLedger | None = None) -> None:
        self.store = store
        self.ledger = ledger

    async def follow(self, follower_id: str, following_id: str) -> bool:
        """Create the follow edge.

        Returns False if it already existed. Self-follows and blank ids are
        rejected before anything is written.
        """
        if not follower_id or not following_id:
            raise ValidationError("follower_id and following_id are required")
        if follower_id == following_id:
            raise ValidationError("Users cannot follow themselves")

        created = await self.store.add(follower_id, following_id)
        if created:
            await self._record_follow(follower_id, following_id)
        return created

    async def _record_follow(self, follower_id: str, following_id: str) -> None:
        if self.ledger is None:
            return
        event = ActivityEvent(
            actor_user_id=follower_id,
            activity_type=ACTIVITY_USER_FOLLOWED,
            visibility=VISIBILITY_PRIVATE,
            created_at=datetime.now(timezone.utc),
            reference_type="user",
            reference_id=following_id,
            metadata={"action": "new_follower"},
        )
        try:
            await self.ledger.record(event)
        except DiscoveryError:
            logger.warning("Failed to record follow activity for %s -> %s", follower_id, following_id, exc_info=True)

    async def unfollow(self, follower_id: str, following_id: str) -> None:
        if not await self.store.remove(follower_id, following_id):
            raise NotFoundError(f"{follower_id} does not follow {following_id}")

    async def followers(self, user_id: str) -> list[str]:
        return await self.store.followers(user_id)

    async def following(self, user_id: str) -> list[str]:
        return await self.store.following(user_id)

    async def is_following(self, follower_id: str, following_id: str) -> bool:
        return await self.store.get(follower_id, following_id) is not None
