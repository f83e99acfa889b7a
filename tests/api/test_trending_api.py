"""Trending endpoints."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestTrendingApi:
    async def test_public_read(self, client: AsyncClient):
        response = await client.get("/api/v1/trending")
        assert response.status_code == 200
        assert response.json() == {"courses": [], "total": 0}

    async def test_refresh_requires_admin(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/trending/refresh", headers=auth_headers("alice"))
        assert response.status_code == 403

    async def test_admin_refresh_then_read(self, client: AsyncClient, progress, auth_headers):
        now = datetime.now(timezone.utc)
        for user in ("u1", "u2", "u3"):
            progress.start(user, "rising", at=now - timedelta(hours=2), category="data")
        progress.start("u4", "rising", at=now - timedelta(hours=30))
        progress.start("u5", "steady", at=now - timedelta(hours=2))
        progress.start("u6", "steady", at=now - timedelta(hours=30))

        refresh = await client.post("/api/v1/trending/refresh", headers=auth_headers("ops", is_admin=True))
        assert refresh.status_code == 200
        assert refresh.json()["total"] == 2

        response = await client.get("/api/v1/trending?limit=1")
        courses = response.json()["courses"]
        assert len(courses) == 1
        assert courses[0]["course_id"] == "rising"
        assert courses[0]["velocity"] == 3.0
        assert courses[0]["rank"] == 1
        assert courses[0]["meta_category"] == "data"

    async def test_limit_must_be_positive(self, client: AsyncClient):
        response = await client.get("/api/v1/trending?limit=0")
        assert response.status_code == 422
