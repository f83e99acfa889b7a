"""In-process providers for the ``memory`` backend and the test suite."""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from discovery.domain import BehaviorStats, Enrollment
from discovery.providers.base import IdentityProvider, ProgressProvider


@dataclass
class _Progress:
    user_id: str
    item_id: str
    started_at: datetime
    completed_at: datetime | None = None
    category: str | None = None


class MemoryProgressProvider(ProgressProvider):
    def __init__(self) -> None:
        self._progress: dict[tuple[str, str], _Progress] = {}
        self._tags: dict[str, set[str]] = defaultdict(set)
        self._stats: dict[str, BehaviorStats] = {}

    # --- Seeding ---

    def start(self, user_id: str, item_id: str, at: datetime | None = None, category: str | None = None) -> None:
        at = at or datetime.now(timezone.utc)
        self._progress[(user_id, item_id)] = _Progress(user_id, item_id, at, category=category)

    def complete(self, user_id: str, item_id: str, at: datetime | None = None) -> None:
        at = at or datetime.now(timezone.utc)
        progress = self._progress.get((user_id, item_id))
        if progress is None:
            self._progress[(user_id, item_id)] = _Progress(user_id, item_id, at, completed_at=at)
        else:
            progress.completed_at = at

    def tag(self, item_id: str, *skills: str) -> None:
        self._tags[item_id].update(skills)

    def set_stats(self, user_id: str, stats: BehaviorStats) -> None:
        self._stats[user_id] = stats

    # --- ProgressProvider ---

    def _completed(self, user_id: str) -> set[str]:
        return {p.item_id for p in self._progress.values() if p.user_id == user_id and p.completed_at is not None}

    async def completed_courses(self, user_id: str) -> set[str]:
        return self._completed(user_id)

    async def started_courses(self, user_id: str) -> set[str]:
        return {p.item_id for p in self._progress.values() if p.user_id == user_id}

    async def completion_overlap(self, course_ids: Iterable[str], exclude_user_id: str) -> dict[str, int]:
        wanted = set(course_ids)
        overlap: Counter[str] = Counter()
        for p in self._progress.values():
            if p.user_id != exclude_user_id and p.completed_at is not None and p.item_id in wanted:
                overlap[p.user_id] += 1
        return dict(overlap)

    async def courses_completed_by(self, user_ids: Iterable[str]) -> dict[str, int]:
        users = set(user_ids)
        completers: Counter[str] = Counter()
        for p in self._progress.values():
            if p.user_id in users and p.completed_at is not None:
                completers[p.item_id] += 1
        ranked = sorted(completers, key=lambda item: (-completers[item], item))
        return {item: completers[item] for item in ranked}

    async def recent_enrollments(self, since: datetime) -> list[Enrollment]:
        return [
            Enrollment(item_id=p.item_id, started_at=p.started_at, category=p.category)
            for p in self._progress.values()
            if p.started_at >= since
        ]

    async def course_skills(self, course_ids: Iterable[str]) -> dict[str, set[str]]:
        return {c: set(self._tags[c]) for c in course_ids if self._tags.get(c)}

    async def courses_for_skills(self, skills: Iterable[str]) -> dict[str, list[str]]:
        wanted = set(skills)
        courses: dict[str, list[str]] = defaultdict(list)
        for item_id in sorted(self._tags):
            for skill in self._tags[item_id] & wanted:
                courses[skill].append(item_id)
        return dict(courses)

    async def behavioral_snapshot(self, user_id: str) -> BehaviorStats:
        stats = self._stats.get(user_id, BehaviorStats())
        completed = len(self._completed(user_id))
        if completed > stats.courses_completed:
            stats = replace(stats, courses_completed=completed)
        return stats

    async def active_users(self, since: datetime, limit: int) -> list[str]:
        seen: dict[str, datetime] = {}
        for p in self._progress.values():
            last = max(p.started_at, p.completed_at or p.started_at)
            if last >= since and (p.user_id not in seen or last > seen[p.user_id]):
                seen[p.user_id] = last
        return sorted(seen, key=lambda u: seen[u], reverse=True)[:limit]


class MemoryIdentityProvider(IdentityProvider):
    def __init__(self, archetypes: dict[str, dict[str, Any]] | None = None) -> None:
        self._archetypes = dict(archetypes or {})

    def set_archetype(self, user_id: str, archetype: dict[str, Any]) -> None:
        self._archetypes[user_id] = archetype

    async def archetype(self, user_id: str) -> dict[str, Any] | None:
        return self._archetypes.get(user_id)
