"""Capability interfaces the engine consumes from sibling domains.

The engine never writes course or identity state; these are injected at
construction time instead of importing the other domains directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Any

from discovery.domain import BehaviorStats, Enrollment


def longest_daily_streak(days: Iterable[date]) -> int:
    """Length of the longest run of consecutive calendar days."""
    ordered = sorted(set(days))
    best = run = 0
    previous: date | None = None
    for day in ordered:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        best = max(best, run)
        previous = day
    return best


class ProgressProvider(ABC):
    """Course completion, enrollment and skill data from the learning domain."""

    @abstractmethod
    async def completed_courses(self, user_id: str) -> set[str]:
        """Courses the user has completed."""

    @abstractmethod
    async def started_courses(self, user_id: str) -> set[str]:
        """Courses the user has started, completed or not."""

    @abstractmethod
    async def completion_overlap(self, course_ids: Iterable[str], exclude_user_id: str) -> dict[str, int]:
        """For every other user, how many of ``course_ids`` they completed.

        Users with no overlap are omitted.
        """

    @abstractmethod
    async def courses_completed_by(self, user_ids: Iterable[str]) -> dict[str, int]:
        """How many of ``user_ids`` completed each course.

        Insertion order is the ranking: most completers first, then by id.
        """

    @abstractmethod
    async def recent_enrollments(self, since: datetime) -> list[Enrollment]:
        """Every course start at or after ``since``."""

    @abstractmethod
    async def course_skills(self, course_ids: Iterable[str]) -> dict[str, set[str]]:
        """Skill tags per course."""

    @abstractmethod
    async def courses_for_skills(self, skills: Iterable[str]) -> dict[str, list[str]]:
        """Courses tagged with each skill."""

    @abstractmethod
    async def behavioral_snapshot(self, user_id: str) -> BehaviorStats:
        """Counters used by achievement criteria."""

    @abstractmethod
    async def active_users(self, since: datetime, limit: int) -> list[str]:
        """Users with learning activity at or after ``since``, most recent first."""


class IdentityProvider(ABC):
    """Profile data from the identity domain."""

    @abstractmethod
    async def archetype(self, user_id: str) -> dict[str, Any] | None:
        """The user's onboarding archetype, if any."""
