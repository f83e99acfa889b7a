"""Living resume endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from discovery.achievements.schemas import AchievementResponse
from discovery.auth.dependencies import get_current_user_id
from discovery.dependencies import get_discovery
from discovery.engine import DiscoveryEngine
from discovery.profile.schemas import ProfileResponse

router = APIRouter(prefix="/api/v1", tags=["Profile"])


@router.get("/users/{user_id}/profile", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    _current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    profile = await engine.profiles.profile(user_id)
    return ProfileResponse(
        user_id=profile.user_id,
        achievements=[AchievementResponse.from_earned(a) for a in profile.achievements],
        followers_count=profile.followers_count,
        following_count=profile.following_count,
        completed_courses=profile.completed_courses,
        current_archetype=profile.current_archetype,
        skill_level=profile.skill_level,
    )
