"""Activity ledger: feed visibility, ordering, limits and broadcast rules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from discovery.domain import (
    VISIBILITY_FRIENDS,
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
    ActivityEvent,
)
from discovery.errors import ValidationError
from discovery.social.activity import ActivityLedger, reference_for, visibility_for


def _event(actor: str, visibility: str, minutes_ago: int = 0, activity_type: str = "module_completed") -> ActivityEvent:
    return ActivityEvent(
        actor_user_id=actor,
        activity_type=activity_type,
        visibility=visibility,
        created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    )


class TestFeed:
    """feed() shows public and friends events from followed accounts only."""

    @pytest.mark.asyncio
    async def test_visibility_filter(self, engine):
        await engine.graph.follow("viewer", "bob")
        public = await engine.ledger.record(_event("bob", VISIBILITY_PUBLIC, 3))
        friends = await engine.ledger.record(_event("bob", VISIBILITY_FRIENDS, 2))
        await engine.ledger.record(_event("bob", VISIBILITY_PRIVATE, 1))

        feed = await engine.ledger.feed("viewer")
        assert [e.id for e in feed] == [friends.id, public.id]
        assert all(e.visibility != VISIBILITY_PRIVATE for e in feed)

    @pytest.mark.asyncio
    async def test_only_followed_accounts(self, engine):
        await engine.graph.follow("viewer", "bob")
        await engine.ledger.record(_event("stranger", VISIBILITY_PUBLIC))
        await engine.ledger.record(_event("viewer", VISIBILITY_PUBLIC))
        assert await engine.ledger.feed("viewer") == []

    @pytest.mark.asyncio
    async def test_newest_first(self, engine):
        await engine.graph.follow("viewer", "bob")
        await engine.graph.follow("viewer", "carol")
        old = await engine.ledger.record(_event("bob", VISIBILITY_PUBLIC, 30))
        new = await engine.ledger.record(_event("carol", VISIBILITY_PUBLIC, 1))
        mid = await engine.ledger.record(_event("bob", VISIBILITY_FRIENDS, 10))
        feed = await engine.ledger.feed("viewer")
        assert [e.id for e in feed] == [new.id, mid.id, old.id]

    @pytest.mark.asyncio
    async def test_limit_applied(self, engine):
        await engine.graph.follow("viewer", "bob")
        for i in range(5):
            await engine.ledger.record(_event("bob", VISIBILITY_PUBLIC, i))
        assert len(await engine.ledger.feed("viewer", 3)) == 3

    @pytest.mark.asyncio
    async def test_empty_feed_for_user_without_follows(self, engine):
        assert await engine.ledger.feed("nobody") == []

    @pytest.mark.asyncio
    async def test_follow_activity_hidden_from_feed(self, engine):
        await engine.graph.follow("viewer", "bob")
        await engine.graph.follow("bob", "carol")
        assert await engine.ledger.feed("viewer") == []


class TestClampLimit:
    """Limits default to 50 and are capped at 200."""

    @pytest.mark.parametrize(("requested", "expected"), [(None, 50), (0, 50), (-5, 50), (10, 10), (200, 200), (500, 200)])
    def test_clamp(self, stores, requested, expected):
        assert ActivityLedger(stores.activities).clamp_limit(requested) == expected


class TestRecord:
    """record() validates before appending."""

    @pytest.mark.asyncio
    async def test_assigns_id(self, engine):
        recorded = await engine.ledger.record(_event("bob", VISIBILITY_PUBLIC))
        assert recorded.id is not None

    @pytest.mark.asyncio
    async def test_rejects_unknown_visibility(self, engine):
        with pytest.raises(ValidationError):
            await engine.ledger.record(_event("bob", "everyone"))

    @pytest.mark.asyncio
    async def test_rejects_missing_actor(self, engine):
        with pytest.raises(ValidationError):
            await engine.ledger.record(_event("", VISIBILITY_PUBLIC))


class TestBroadcast:
    """broadcast() derives visibility and reference from type and metadata."""

    @pytest.mark.parametrize(
        ("activity_type", "visibility"),
        [
            ("course_completed", VISIBILITY_PUBLIC),
            ("achievement_earned", VISIBILITY_PUBLIC),
            ("optimization_achieved", VISIBILITY_PUBLIC),
            ("exercise_attempted", VISIBILITY_PRIVATE),
            ("hint_used", VISIBILITY_PRIVATE),
            ("review_requested", VISIBILITY_PRIVATE),
            ("module_completed", VISIBILITY_FRIENDS),
            ("exercise_solved", VISIBILITY_FRIENDS),
        ],
    )
    def test_visibility_for(self, activity_type, visibility):
        assert visibility_for(activity_type) == visibility

    def test_reference_prefers_course(self):
        assert reference_for({"module_id": "m1", "course_id": "c1"}) == ("course", "c1")

    def test_reference_falls_back(self):
        assert reference_for({"module_id": "m1", "achievement_id": "a1"}) == ("module", "m1")
        assert reference_for({"achievement_id": "a1"}) == ("achievement", "a1")
        assert reference_for({"score": 10}) == (None, None)

    @pytest.mark.asyncio
    async def test_broadcast_records_event(self, engine):
        event = await engine.ledger.broadcast("bob", "course_completed", {"course_id": "c1", "score": 97})
        assert event.visibility == VISIBILITY_PUBLIC
        assert (event.reference_type, event.reference_id) == ("course", "c1")
        assert event.metadata == {"course_id": "c1", "score": 97}
        assert await engine.stores.activities.by_actor("bob", 10) == [event]


class TestHistory:
    """The actor's own ledger, private events included."""

    @pytest.mark.asyncio
    async def test_includes_private_events(self, engine):
        await engine.ledger.broadcast("bob", "hint_used", {"course_id": "c1"})
        await engine.ledger.broadcast("bob", "course_completed", {"course_id": "c1"})

        history = await engine.ledger.history("bob")
        assert [e.activity_type for e in history] == ["course_completed", "hint_used"]

    @pytest.mark.asyncio
    async def test_limit_clamped(self, engine):
        for i in range(5):
            await engine.ledger.broadcast("bob", "module_completed", {"module_id": f"m{i}"})
        assert len(await engine.ledger.history("bob", limit=2)) == 2
