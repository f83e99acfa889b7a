"""Follow graph and activity feed endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from discovery.auth.dependencies import get_current_user_id
from discovery.dependencies import get_discovery
from discovery.engine import DiscoveryEngine
from discovery.social.schemas import (
    ActivityResponse,
    FeedResponse,
    FollowResponse,
    FollowStatusResponse,
    UserListResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Social"])


# ── Follow graph ──


@router.post("/users/{user_id}/follow", response_model=FollowResponse, status_code=201)
async def follow_user(
    user_id: str,
    response: Response,
    current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Follow ``user_id``. Following someone twice is a no-op (200)."""
    created = await engine.graph.follow(current_user_id, user_id)
    if not created:
        response.status_code = 200
    return FollowResponse(follower_id=current_user_id, following_id=user_id, created=created)


@router.delete("/users/{user_id}/follow", status_code=204)
async def unfollow_user(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
) -> Response:
    await engine.graph.unfollow(current_user_id, user_id)
    return Response(status_code=204)


@router.get("/users/{user_id}/follow", response_model=FollowStatusResponse)
async def follow_status(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Whether the caller follows ``user_id``."""
    following = await engine.graph.is_following(current_user_id, user_id)
    return FollowStatusResponse(follower_id=current_user_id, following_id=user_id, following=following)


@router.get("/users/{user_id}/followers", response_model=UserListResponse)
async def list_followers(
    user_id: str,
    _current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    users = await engine.graph.followers(user_id)
    return UserListResponse(user_id=user_id, users=users, total=len(users))


@router.get("/users/{user_id}/following", response_model=UserListResponse)
async def list_following(
    user_id: str,
    _current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    users = await engine.graph.following(user_id)
    return UserListResponse(user_id=user_id, users=users, total=len(users))


# ── Feed ──


@router.get("/feed", response_model=FeedResponse)
async def activity_feed(
    limit: int | None = Query(None),
    current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Activity from accounts the caller follows, newest first."""
    effective = engine.ledger.clamp_limit(limit)
    events = await engine.ledger.feed(current_user_id, effective)
    return FeedResponse(activities=[ActivityResponse.from_event(e) for e in events], limit=effective)


@router.get("/users/me/activity", response_model=FeedResponse)
async def my_activity(
    limit: int | None = Query(None),
    current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """The caller's own activity, private events included."""
    effective = engine.ledger.clamp_limit(limit)
    events = await engine.ledger.history(current_user_id, effective)
    return FeedResponse(activities=[ActivityResponse.from_event(e) for e in events], limit=effective)
