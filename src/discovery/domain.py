"""Engine value types shared by stores, strategies and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# --- Visibility ---

VISIBILITY_PUBLIC = "public"
VISIBILITY_FRIENDS = "friends"
VISIBILITY_PRIVATE = "private"
VISIBILITIES = frozenset({VISIBILITY_PUBLIC, VISIBILITY_FRIENDS, VISIBILITY_PRIVATE})
FEED_VISIBILITIES = (VISIBILITY_PUBLIC, VISIBILITY_FRIENDS)

# --- Strategies ---

STRATEGY_COLLABORATIVE = "collaborative_filtering"
STRATEGY_SKILL_ADJACENCY = "skill_adjacency"
STRATEGY_SOCIAL_SIGNAL = "social_signal"
STRATEGY_TRENDING = "trending"
STRATEGIES = (
    STRATEGY_COLLABORATIVE,
    STRATEGY_SKILL_ADJACENCY,
    STRATEGY_SOCIAL_SIGNAL,
    STRATEGY_TRENDING,
)
ALL_STRATEGIES = "all"

# --- Activity types ---

ACTIVITY_MODULE_COMPLETED = "module_completed"
ACTIVITY_COURSE_COMPLETED = "course_completed"
ACTIVITY_EXERCISE_SOLVED = "exercise_solved"
ACTIVITY_ACHIEVEMENT_EARNED = "achievement_earned"
ACTIVITY_REVIEW_PASSED = "review_passed"
ACTIVITY_OPTIMIZATION_ACHIEVED = "optimization_achieved"
ACTIVITY_USER_FOLLOWED = "user_followed"


@dataclass(frozen=True)
class RelationshipEdge:
    follower_id: str
    following_id: str
    created_at: datetime


@dataclass(frozen=True)
class ActivityEvent:
    """One immutable ledger entry. ``id`` is assigned by the store on record."""

    actor_user_id: str
    activity_type: str
    visibility: str
    created_at: datetime
    reference_type: str | None = None
    reference_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass
class Recommendation:
    user_id: str
    item_id: str
    strategy: str
    match_score: int
    reason: str
    created_at: datetime
    expires_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None

    def is_live(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


@dataclass(frozen=True)
class TrendingEntry:
    item_id: str
    velocity: float
    signups_24h: int
    signups_previous_24h: int
    rank: int
    category: str | None
    calculated_at: datetime


@dataclass(frozen=True)
class UnlockedAchievement:
    user_id: str
    achievement_id: str
    unlocked_at: datetime


@dataclass(frozen=True)
class Enrollment:
    """A single course start, as reported by the progress provider."""

    item_id: str
    started_at: datetime
    category: str | None = None


@dataclass(frozen=True)
class BehaviorStats:
    """Behavioral snapshot used by achievement criteria."""

    courses_completed: int = 0
    modules_completed: int = 0
    exercises_solved: int = 0
    perfect_scores: int = 0
    review_score_avg: int = 0
    consecutive_days: int = 0
    total_hours: int = 0
