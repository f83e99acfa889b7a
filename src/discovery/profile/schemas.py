"""Pydantic schemas for the profile endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from discovery.achievements.schemas import AchievementResponse


class ProfileResponse(BaseModel):
    user_id: str
    achievements: list[AchievementResponse]
    followers_count: int
    following_count: int
    completed_courses: int
    current_archetype: dict[str, Any] | None = None
    skill_level: str
