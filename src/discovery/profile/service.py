"""Living resume: achievements, social counts and progress in one view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from discovery.achievements.evaluator import AchievementEvaluator, EarnedAchievement
from discovery.errors import DiscoveryError
from discovery.providers.base import IdentityProvider, ProgressProvider
from discovery.social.graph import SocialGraph

logger = logging.getLogger(__name__)


def skill_level(completed_courses: int) -> str:
    if completed_courses >= 5:
        return "advanced"
    if completed_courses >= 2:
        return "intermediate"
    return "beginner"


@dataclass
class UserProfile:
    user_id: str
    achievements: list[EarnedAchievement] = field(default_factory=list)
    followers_count: int = 0
    following_count: int = 0
    completed_courses: int = 0
    current_archetype: dict[str, Any] | None = None
    skill_level: str = "beginner"


class ProfileService:
    def __init__(
        self,
        graph: SocialGraph,
        achievements: AchievementEvaluator,
        progress: ProgressProvider,
        identity: IdentityProvider | None = None,
    ) -> None:
        self.graph = graph
        self.achievements = achievements
        self.progress = progress
        self.identity = identity

    async def profile(self, user_id: str) -> UserProfile:
        """Build the profile. Provider failures degrade to empty values."""
        profile = UserProfile(user_id=user_id)
        profile.achievements = await self.achievements.evaluate(user_id)
        profile.followers_count = len(await self.graph.followers(user_id))
        profile.following_count = len(await self.graph.following(user_id))

        try:
            profile.completed_courses = len(await self.progress.completed_courses(user_id))
        except DiscoveryError:
            logger.warning("Progress provider unavailable for profile of %s", user_id, exc_info=True)

        if self.identity is not None:
            try:
                profile.current_archetype = await self.identity.archetype(user_id)
            except DiscoveryError:
                logger.warning("Identity provider unavailable for profile of %s", user_id, exc_info=True)

        profile.skill_level = skill_level(profile.completed_courses)
        return profile
