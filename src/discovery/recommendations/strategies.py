"""Recommendation strategies.

A strategy only computes rows; persisting them is the service's job. Each
strategy is independent, so one failing never blocks the others.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta

from discovery.domain import (
    STRATEGY_COLLABORATIVE,
    STRATEGY_SKILL_ADJACENCY,
    STRATEGY_SOCIAL_SIGNAL,
    STRATEGY_TRENDING,
    Recommendation,
)
from discovery.providers.base import ProgressProvider
from discovery.recommendations.skill_graph import SKILL_GRAPH, SkillGraph
from discovery.stores.base import RelationshipStore, TrendingStore

MAX_SCORE = 100

SKILL_REASONS = (
    "Next logical skill progression",
    "Building on completed fundamentals",
    "Advanced techniques in your domain",
)


def clamp_score(score: float) -> int:
    return max(0, min(MAX_SCORE, int(score)))


class Strategy(ABC):
    name: str

    @abstractmethod
    async def generate(self, user_id: str, now: datetime) -> list[Recommendation]:
        """Compute this strategy's rows for ``user_id``, best first."""


class CollaborativeFilteringStrategy(Strategy):
    """Courses completed by users whose completions cover most of the target's."""

    name = STRATEGY_COLLABORATIVE
    reason = "Users with similar progress completed this"

    def __init__(
        self,
        progress: ProgressProvider,
        min_overlap: float = 0.8,
        max_similar_users: int = 50,
        max_results: int = 20,
        base_score: int = 90,
        expiry: timedelta = timedelta(days=7),
    ) -> None:
        self.progress = progress
        self.min_overlap = min_overlap
        self.max_similar_users = max_similar_users
        self.max_results = max_results
        self.base_score = base_score
        self.expiry = expiry

    async def similar_users(self, user_id: str, completed: set[str]) -> list[str]:
        overlap = await self.progress.completion_overlap(completed, user_id)
        threshold = self.min_overlap * len(completed)
        similar = [u for u, count in overlap.items() if count >= threshold]
        similar.sort(key=lambda u: (-overlap[u], u))
        return similar[: self.max_similar_users]

    async def generate(self, user_id: str, now: datetime) -> list[Recommendation]:
        completed = await self.progress.completed_courses(user_id)
        if not completed:
            return []
        similar = await self.similar_users(user_id, completed)
        if not similar:
            return []

        started = await self.progress.started_courses(user_id)
        candidates = [c for c in await self.progress.courses_completed_by(similar) if c not in started]
        return [
            Recommendation(
                user_id=user_id,
                item_id=item_id,
                strategy=self.name,
                match_score=clamp_score(self.base_score - i),
                reason=self.reason,
                metadata={"similar_user_count": len(similar)},
                created_at=now,
                expires_at=now + self.expiry,
            )
            for i, item_id in enumerate(candidates[: self.max_results])
        ]


class SkillAdjacencyStrategy(Strategy):
    """One hop through the skill graph from the skills of completed courses.

    An adjacent skill's position in its source skill's neighbor list picks the
    score band; ties are broken by how many of the user's skills point at it.
    """

    name = STRATEGY_SKILL_ADJACENCY

    def __init__(
        self,
        progress: ProgressProvider,
        graph: SkillGraph = SKILL_GRAPH,
        max_results: int = 10,
        score_bands: Sequence[int] = (88, 85, 82),
        expiry: timedelta = timedelta(days=7),
    ) -> None:
        if not score_bands:
            raise ValueError("score_bands must not be empty")
        self.progress = progress
        self.graph = graph
        self.max_results = max_results
        self.score_bands = tuple(score_bands)
        self.expiry = expiry

    def adjacent_skills(self, owned: set[str]) -> list[tuple[str, int, str]]:
        """Rank the one-hop neighbors of ``owned`` as (skill, position, from_skill)."""
        closest: dict[str, tuple[int, str]] = {}
        pointers: Counter[str] = Counter()
        for source in sorted(owned):
            for position, skill in enumerate(self.graph.get(source, ())):
                pointers[skill] += 1
                if skill not in closest or position < closest[skill][0]:
                    closest[skill] = (position, source)
        ranked = sorted(closest, key=lambda s: (closest[s][0], -pointers[s], s))
        return [(skill, closest[skill][0], closest[skill][1]) for skill in ranked]

    async def generate(self, user_id: str, now: datetime) -> list[Recommendation]:
        completed = await self.progress.completed_courses(user_id)
        if not completed:
            return []
        skills_by_course = await self.progress.course_skills(completed)
        owned = set().union(*skills_by_course.values()) if skills_by_course else set()
        adjacent = self.adjacent_skills(owned)
        if not adjacent:
            return []

        courses_by_skill = await self.progress.courses_for_skills(skill for skill, _, _ in adjacent)
        started = await self.progress.started_courses(user_id)

        recommendations: list[Recommendation] = []
        seen: set[str] = set()
        for skill, position, source in adjacent:
            band = min(position, len(self.score_bands) - 1)
            reason = SKILL_REASONS[min(position, len(SKILL_REASONS) - 1)]
            for item_id in courses_by_skill.get(skill, ()):
                if item_id in started or item_id in seen:
                    continue
                seen.add(item_id)
                recommendations.append(Recommendation(
                    user_id=user_id,
                    item_id=item_id,
                    strategy=self.name,
                    match_score=clamp_score(self.score_bands[band]),
                    reason=reason,
                    metadata={"from_skill": source, "skill": skill},
                    created_at=now,
                    expires_at=now + self.expiry,
                ))
                if len(recommendations) >= self.max_results:
                    return recommendations
        return recommendations


class SocialSignalStrategy(Strategy):
    """Courses completed by the accounts a user follows."""

    name = STRATEGY_SOCIAL_SIGNAL
    reason = "Friends are learning this"

    def __init__(
        self,
        relationships: RelationshipStore,
        progress: ProgressProvider,
        min_following: int = 3,
        max_results: int = 15,
        base_score: int = 85,
        expiry: timedelta = timedelta(days=3),
    ) -> None:
        self.relationships = relationships
        self.progress = progress
        self.min_following = min_following
        self.max_results = max_results
        self.base_score = base_score
        self.expiry = expiry

    async def generate(self, user_id: str, now: datetime) -> list[Recommendation]:
        following = await self.relationships.following(user_id)
        if len(following) < self.min_following:
            return []

        started = await self.progress.started_courses(user_id)
        completions = await self.progress.courses_completed_by(following)
        candidates = [(item_id, n) for item_id, n in completions.items() if item_id not in started]
        return [
            Recommendation(
                user_id=user_id,
                item_id=item_id,
                strategy=self.name,
                match_score=clamp_score(self.base_score - i),
                reason=self.reason,
                metadata={"friend_count": friends},
                created_at=now,
                expires_at=now + self.expiry,
            )
            for i, (item_id, friends) in enumerate(candidates[: self.max_results])
        ]


class TrendingStrategy(Strategy):
    """Copies the head of the trending snapshot into per-user rows."""

    name = STRATEGY_TRENDING

    def __init__(
        self,
        trending: TrendingStore,
        count: int = 10,
        expiry: timedelta = timedelta(hours=24),
    ) -> None:
        self.trending = trending
        self.count = count
        self.expiry = expiry

    async def generate(self, user_id: str, now: datetime) -> list[Recommendation]:
        entries = await self.trending.top(self.count)
        return [
            Recommendation(
                user_id=user_id,
                item_id=entry.item_id,
                strategy=self.name,
                match_score=clamp_score(round(entry.velocity * 10)),
                reason=f"Trending with {entry.velocity:.1f}x velocity",
                metadata={
                    "velocity": entry.velocity,
                    "signups_24h": entry.signups_24h,
                    "rank": entry.rank,
                },
                created_at=now,
                expires_at=now + self.expiry,
            )
            for entry in entries
        ]
