"""Activity ledger: append-only events and the follow-graph feed."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from discovery.domain import (
    ACTIVITY_ACHIEVEMENT_EARNED,
    ACTIVITY_COURSE_COMPLETED,
    ACTIVITY_OPTIMIZATION_ACHIEVED,
    FEED_VISIBILITIES,
    VISIBILITIES,
    VISIBILITY_FRIENDS,
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
    ActivityEvent,
)
from discovery.errors import ValidationError
from discovery.stores.base import ActivityStore

logger = logging.getLogger(__name__)

PUBLIC_ACTIVITY_TYPES = frozenset({
    ACTIVITY_COURSE_COMPLETED,
    ACTIVITY_ACHIEVEMENT_EARNED,
    ACTIVITY_OPTIMIZATION_ACHIEVED,
})
PRIVATE_ACTIVITY_TYPES = frozenset({"exercise_attempted", "hint_used", "review_requested"})

# Checked in order; the first key present in the metadata wins.
REFERENCE_KEYS = (
    ("course_id", "course"),
    ("module_id", "module"),
    ("achievement_id", "achievement"),
)


def visibility_for(activity_type: str) -> str:
    """Default visibility of an activity type."""
    if activity_type in PUBLIC_ACTIVITY_TYPES:
        return VISIBILITY_PUBLIC
    if activity_type in PRIVATE_ACTIVITY_TYPES:
        return VISIBILITY_PRIVATE
    return VISIBILITY_FRIENDS


def reference_for(metadata: Mapping[str, Any]) -> tuple[str | None, str | None]:
    """Derive (reference_type, reference_id) from event metadata."""
    for key, reference_type in REFERENCE_KEYS:
        value = metadata.get(key)
        if value:
            return reference_type, str(value)
    return None, None


class ActivityLedger:
    def __init__(self, store: ActivityStore, default_limit: int = 50, max_limit: int = 200) -> None:
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self.default_limit
        return min(limit, self.max_limit)

    async def record(self, event: ActivityEvent) -> ActivityEvent:
        if not event.actor_user_id:
            raise ValidationError("actor_user_id is required")
        if not event.activity_type:
            raise ValidationError("activity_type is required")
        if event.visibility not in VISIBILITIES:
            raise ValidationError(f"Unknown visibility: {event.visibility}")
        return await self.store.append(event)

    async def broadcast(
        self,
        user_id: str,
        activity_type: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> ActivityEvent:
        """Record an activity with visibility and reference derived from its type and metadata."""
        metadata = dict(metadata or {})
        reference_type, reference_id = reference_for(metadata)
        event = ActivityEvent(
            actor_user_id=user_id,
            activity_type=activity_type,
            visibility=visibility_for(activity_type),
            created_at=datetime.now(timezone.utc),
            reference_type=reference_type,
            reference_id=reference_id,
            metadata=metadata,
        )
        recorded = await self.record(event)
        logger.debug("Broadcast %s for user %s (%s)", activity_type, user_id, recorded.visibility)
        return recorded

    async def feed(self, user_id: str, limit: int | None = None) -> list[ActivityEvent]:
        """Public and friends-visible events from followed accounts, newest first."""
        return await self.store.feed(user_id, FEED_VISIBILITIES, self.clamp_limit(limit))

    async def history(self, user_id: str, limit: int | None = None) -> list[ActivityEvent]:
        """Everything ``user_id`` did, private events included, newest first."""
        return await self.store.by_actor(user_id, self.clamp_limit(limit))
