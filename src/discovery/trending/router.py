"""Trending endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from discovery.auth.dependencies import Principal, require_admin
from discovery.dependencies import get_discovery
from discovery.engine import DiscoveryEngine
from discovery.trending.schemas import TrendingCourseResponse, TrendingListResponse

router = APIRouter(prefix="/api/v1", tags=["Trending"])


@router.get("/trending", response_model=TrendingListResponse)
async def get_trending(
    limit: int | None = Query(None, ge=1),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Current trending snapshot by rank (public)."""
    entries = await engine.trending.top(limit)
    return TrendingListResponse(
        courses=[TrendingCourseResponse.from_entry(e) for e in entries],
        total=len(entries),
    )


@router.post("/trending/refresh", response_model=TrendingListResponse)
async def refresh_trending(
    _admin: Principal = Depends(require_admin),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Recompute and replace the trending snapshot (admin only)."""
    snapshot = await engine.trending.refresh()
    return TrendingListResponse(
        courses=[TrendingCourseResponse.from_entry(e) for e in snapshot],
        total=len(snapshot),
    )
