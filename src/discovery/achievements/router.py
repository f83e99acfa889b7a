"""Achievement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from discovery.achievements.schemas import AchievementListResponse, AchievementResponse
from discovery.auth.dependencies import Principal, get_current_user_id, require_admin
from discovery.dependencies import get_discovery
from discovery.engine import DiscoveryEngine

router = APIRouter(prefix="/api/v1", tags=["Achievements"])


@router.get("/users/me/achievements", response_model=AchievementListResponse)
async def my_achievements(
    current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Evaluate and return the caller's achievements. Newly earned ones are flagged."""
    earned = await engine.achievements.evaluate(current_user_id)
    items = [AchievementResponse.from_earned(e) for e in earned]
    return AchievementListResponse(achievements=items, total=len(items), new_count=sum(1 for i in items if i.new))


@router.post("/users/{user_id}/achievements/{achievement_id}", response_model=AchievementResponse)
async def grant_achievement(
    user_id: str,
    achievement_id: str,
    _admin: Principal = Depends(require_admin),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Manually unlock an achievement (admin only). Idempotent."""
    earned = await engine.achievements.unlock(user_id, achievement_id)
    return AchievementResponse.from_earned(earned)
