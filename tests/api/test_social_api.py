"""Follow graph and feed endpoints."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestFollowApi:
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/v1/users/bob/follow")
        assert response.status_code in (401, 403)

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.post("/api/v1/users/bob/follow", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    async def test_follow_then_duplicate(self, client: AsyncClient, auth_headers):
        first = await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        assert first.status_code == 201
        assert first.json() == {"follower_id": "alice", "following_id": "bob", "created": True}

        again = await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        assert again.status_code == 200
        assert again.json()["created"] is False

    async def test_self_follow_rejected(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/users/alice/follow", headers=auth_headers("alice"))
        assert response.status_code == 400
        assert response.json()["retryable"] is False

    async def test_unfollow(self, client: AsyncClient, auth_headers):
        await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        response = await client.delete("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        assert response.status_code == 204

        missing = await client.delete("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        assert missing.status_code == 404

    async def test_lists(self, client: AsyncClient, auth_headers):
        await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        await client.post("/api/v1/users/bob/follow", headers=auth_headers("carol"))

        followers = await client.get("/api/v1/users/bob/followers", headers=auth_headers("alice"))
        assert followers.json() == {"user_id": "bob", "users": ["carol", "alice"], "total": 2}

        following = await client.get("/api/v1/users/alice/following", headers=auth_headers("alice"))
        assert following.json()["users"] == ["bob"]


    async def test_follow_status(self, client: AsyncClient, auth_headers):
        before = await client.get("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        assert before.json() == {"follower_id": "alice", "following_id": "bob", "following": False}

        await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        after = await client.get("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        assert after.json()["following"] is True


class TestFeedApi:
    async def test_feed_shows_followed_public_activity(self, client: AsyncClient, engine, auth_headers):
        await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        await engine.ledger.broadcast("bob", "course_completed", {"course_id": "c1"})
        await engine.ledger.broadcast("bob", "hint_used", {"course_id": "c1"})
        await engine.ledger.broadcast("dave", "course_completed", {"course_id": "c2"})

        response = await client.get("/api/v1/feed", headers=auth_headers("alice"))
        assert response.status_code == 200
        data = response.json()
        assert data["limit"] == 50
        assert [(a["user_id"], a["activity_type"]) for a in data["activities"]] == [("bob", "course_completed")]
        assert data["activities"][0]["reference_type"] == "course"
        assert data["activities"][0]["reference_id"] == "c1"

    async def test_follow_events_stay_private(self, client: AsyncClient, auth_headers):
        await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))
        await client.post("/api/v1/users/carol/follow", headers=auth_headers("bob"))

        response = await client.get("/api/v1/feed", headers=auth_headers("alice"))
        assert response.json()["activities"] == []

    async def test_limit_clamped(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/feed?limit=5000", headers=auth_headers("alice"))
        assert response.json()["limit"] == 200


class TestActivityHistoryApi:
    async def test_actor_sees_own_private_events(self, client: AsyncClient, auth_headers):
        await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))

        response = await client.get("/api/v1/users/me/activity", headers=auth_headers("alice"))
        assert response.status_code == 200
        activities = response.json()["activities"]
        assert [(a["activity_type"], a["visibility"]) for a in activities] == [("user_followed", "private")]
        assert activities[0]["reference_id"] == "bob"

    async def test_others_do_not_see_it(self, client: AsyncClient, auth_headers):
        await client.post("/api/v1/users/bob/follow", headers=auth_headers("alice"))

        response = await client.get("/api/v1/users/me/activity", headers=auth_headers("bob"))
        assert response.json()["activities"] == []

    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me/activity")
        assert response.status_code in (401, 403)
