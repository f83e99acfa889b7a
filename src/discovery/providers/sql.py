"""Read-only SQL adapters over the learning and identity tables.

These tables belong to other services; the queries here only ever SELECT.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from discovery.domain import BehaviorStats, Enrollment
from discovery.providers.base import IdentityProvider, ProgressProvider, longest_daily_streak
from discovery.stores.sql import SqlUnitOfWork

_COMPLETED = text("""
    SELECT course_id::text AS course_id
    FROM user_progress
    WHERE user_id::text = :user_id AND completed_at IS NOT NULL
""")

_STARTED = text("""
    SELECT course_id::text AS course_id
    FROM user_progress
    WHERE user_id::text = :user_id
""")

_OVERLAP = text("""
    SELECT user_id::text AS user_id, COUNT(DISTINCT course_id) AS overlap
    FROM user_progress
    WHERE completed_at IS NOT NULL
      AND course_id::text IN :course_ids
      AND user_id::text != :user_id
    GROUP BY user_id
""").bindparams(bindparam("course_ids", expanding=True))

_COMPLETED_BY = text("""
    SELECT course_id::text AS course_id, COUNT(DISTINCT user_id) AS completers
    FROM user_progress
    WHERE completed_at IS NOT NULL AND user_id::text IN :user_ids
    GROUP BY course_id
    ORDER BY completers DESC, course_id::text ASC
""").bindparams(bindparam("user_ids", expanding=True))

_ENROLLMENTS = text("""
    SELECT up.course_id::text AS course_id, up.started_at, gc.meta_category
    FROM user_progress up
    LEFT JOIN generated_courses gc ON gc.id = up.course_id
    WHERE up.started_at >= :since
""")

_COURSE_SKILLS = text("""
    SELECT course_id::text AS course_id, tag
    FROM course_tags
    WHERE course_id::text IN :course_ids
""").bindparams(bindparam("course_ids", expanding=True))

_SKILL_COURSES = text("""
    SELECT tag, course_id::text AS course_id
    FROM course_tags
    WHERE tag IN :skills
    ORDER BY tag, course_id::text
""").bindparams(bindparam("skills", expanding=True))

_PROGRESS_TOTALS = text("""
    SELECT
        COUNT(*) FILTER (WHERE completed_at IS NOT NULL) AS courses_completed,
        COALESCE(SUM(time_spent_minutes), 0) AS minutes
    FROM user_progress
    WHERE user_id::text = :user_id
""")

_SUBMISSION_TOTALS = text("""
    SELECT
        COUNT(DISTINCT module_id) FILTER (WHERE passed) AS modules_completed,
        COUNT(DISTINCT exercise_id) FILTER (WHERE passed) AS exercises_solved,
        COUNT(*) FILTER (WHERE score = 100) AS perfect_scores
    FROM module_completions
    WHERE user_id::text = :user_id
""")

_REVIEW_AVG = text("""
    SELECT COALESCE(AVG(overall_score), 0) AS avg_score
    FROM architecture_reviews
    WHERE user_id::text = :user_id
""")

_ACTIVE_DAYS = text("""
    SELECT DISTINCT CAST(submitted_at AS DATE) AS day
    FROM module_completions
    WHERE user_id::text = :user_id AND submitted_at IS NOT NULL
""")

_ACTIVE_USERS = text("""
    SELECT user_id::text AS user_id, MAX(last_activity) AS seen
    FROM user_progress
    WHERE last_activity >= :since
    GROUP BY user_id
    ORDER BY seen DESC
    LIMIT :limit
""")

_ARCHETYPE = text("""
    SELECT meta_category, domain, skill_level
    FROM user_archetypes
    WHERE user_id::text = :user_id
""")


class SqlProgressProvider(SqlUnitOfWork, ProgressProvider):
    async def completed_courses(self, user_id: str) -> set[str]:
        async def work(session: AsyncSession) -> set[str]:
            result = await session.execute(_COMPLETED, {"user_id": user_id})
            return set(result.scalars())

        return await self._run("progress.completed_courses", work)

    async def started_courses(self, user_id: str) -> set[str]:
        async def work(session: AsyncSession) -> set[str]:
            result = await session.execute(_STARTED, {"user_id": user_id})
            return set(result.scalars())

        return await self._run("progress.started_courses", work)

    async def completion_overlap(self, course_ids: Iterable[str], exclude_user_id: str) -> dict[str, int]:
        ids = list(course_ids)
        if not ids:
            return {}

        async def work(session: AsyncSession) -> dict[str, int]:
            result = await session.execute(_OVERLAP, {"course_ids": ids, "user_id": exclude_user_id})
            return {row.user_id: int(row.overlap) for row in result}

        return await self._run("progress.completion_overlap", work)

    async def courses_completed_by(self, user_ids: Iterable[str]) -> dict[str, int]:
        ids = list(user_ids)
        if not ids:
            return {}

        async def work(session: AsyncSession) -> dict[str, int]:
            result = await session.execute(_COMPLETED_BY, {"user_ids": ids})
            return {row.course_id: int(row.completers) for row in result}

        return await self._run("progress.courses_completed_by", work)

    async def recent_enrollments(self, since: datetime) -> list[Enrollment]:
        async def work(session: AsyncSession) -> list[Enrollment]:
            result = await session.execute(_ENROLLMENTS, {"since": since})
            return [
                Enrollment(item_id=row.course_id, started_at=row.started_at, category=row.meta_category)
                for row in result
            ]

        return await self._run("progress.recent_enrollments", work)

    async def course_skills(self, course_ids: Iterable[str]) -> dict[str, set[str]]:
        ids = list(course_ids)
        if not ids:
            return {}

        async def work(session: AsyncSession) -> dict[str, set[str]]:
            result = await session.execute(_COURSE_SKILLS, {"course_ids": ids})
            skills: dict[str, set[str]] = defaultdict(set)
            for row in result:
                skills[row.course_id].add(row.tag)
            return dict(skills)

        return await self._run("progress.course_skills", work)

    async def courses_for_skills(self, skills: Iterable[str]) -> dict[str, list[str]]:
        wanted = list(skills)
        if not wanted:
            return {}

        async def work(session: AsyncSession) -> dict[str, list[str]]:
            result = await session.execute(_SKILL_COURSES, {"skills": wanted})
            courses: dict[str, list[str]] = defaultdict(list)
            for row in result:
                courses[row.tag].append(row.course_id)
            return dict(courses)

        return await self._run("progress.courses_for_skills", work)

    async def behavioral_snapshot(self, user_id: str) -> BehaviorStats:
        async def work(session: AsyncSession) -> BehaviorStats:
            params = {"user_id": user_id}
            progress = (await session.execute(_PROGRESS_TOTALS, params)).one()
            submissions = (await session.execute(_SUBMISSION_TOTALS, params)).one()
            review_avg = (await session.execute(_REVIEW_AVG, params)).scalar_one()
            days = (await session.execute(_ACTIVE_DAYS, params)).scalars().all()
            return BehaviorStats(
                courses_completed=int(progress.courses_completed),
                modules_completed=int(submissions.modules_completed),
                exercises_solved=int(submissions.exercises_solved),
                perfect_scores=int(submissions.perfect_scores),
                review_score_avg=int(review_avg),
                consecutive_days=longest_daily_streak(days),
                total_hours=int(progress.minutes) // 60,
            )

        return await self._run("progress.behavioral_snapshot", work)

    async def active_users(self, since: datetime, limit: int) -> list[str]:
        async def work(session: AsyncSession) -> list[str]:
            result = await session.execute(_ACTIVE_USERS, {"since": since, "limit": limit})
            return [row.user_id for row in result]

        return await self._run("progress.active_users", work)


class SqlIdentityProvider(SqlUnitOfWork, IdentityProvider):
    async def archetype(self, user_id: str) -> dict[str, Any] | None:
        async def work(session: AsyncSession) -> dict[str, Any] | None:
            row = (await session.execute(_ARCHETYPE, {"user_id": user_id})).one_or_none()
            if row is None:
                return None
            return {"meta_category": row.meta_category, "domain": row.domain, "skill_level": row.skill_level}

        return await self._run("identity.archetype", work)
