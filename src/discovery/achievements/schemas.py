"""Pydantic schemas for achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from discovery.achievements.evaluator import EarnedAchievement


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    rarity: str
    unlocked_at: datetime
    new: bool = False

    @classmethod
    def from_earned(cls, earned: EarnedAchievement) -> AchievementResponse:
        return cls(
            id=earned.definition.id,
            name=earned.definition.name,
            description=earned.definition.description,
            rarity=earned.definition.rarity,
            unlocked_at=earned.unlocked_at,
            new=earned.new,
        )


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]
    total: int
    new_count: int
