"""Static achievement definitions."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from discovery.domain import BehaviorStats

RARITIES = ("common", "rare", "epic", "legendary")


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    rarity: str
    criteria: Callable[[BehaviorStats], bool]

    def is_met(self, stats: BehaviorStats) -> bool:
        return self.criteria(stats)


CATALOG: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        "first_module", "First Steps", "Complete your first module", "common",
        lambda s: s.modules_completed >= 1,
    ),
    AchievementDefinition(
        "course_completed", "Course Master", "Complete your first course", "common",
        lambda s: s.courses_completed >= 1,
    ),
    AchievementDefinition(
        "perfect_score", "Perfectionist", "Achieve a perfect score on an exercise", "rare",
        lambda s: s.perfect_scores >= 1,
    ),
    AchievementDefinition(
        "ten_exercises", "Problem Solver", "Solve 10 exercises", "common",
        lambda s: s.exercises_solved >= 10,
    ),
    AchievementDefinition(
        "fifty_exercises", "Code Warrior", "Solve 50 exercises", "rare",
        lambda s: s.exercises_solved >= 50,
    ),
    AchievementDefinition(
        "hundred_exercises", "Code Legend", "Solve 100 exercises", "epic",
        lambda s: s.exercises_solved >= 100,
    ),
    AchievementDefinition(
        "week_streak", "Consistent Learner", "Learn for 7 consecutive days", "rare",
        lambda s: s.consecutive_days >= 7,
    ),
    AchievementDefinition(
        "three_courses", "Polymath", "Complete 3 different courses", "epic",
        lambda s: s.courses_completed >= 3,
    ),
    AchievementDefinition(
        "high_reviewer", "Architecture Expert", "Maintain 90+ average review score", "epic",
        lambda s: s.review_score_avg >= 90,
    ),
    AchievementDefinition(
        "dedicated", "Dedicated Student", "Spend 100+ hours learning", "legendary",
        lambda s: s.total_hours >= 100,
    ),
)

CATALOG_BY_ID: Mapping[str, AchievementDefinition] = MappingProxyType({d.id: d for d in CATALOG})
