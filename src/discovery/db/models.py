"""ORM models for the tables owned by the discovery engine.

Learning-domain tables (user_progress, generated_courses, course_tags, ...) are
read through ``discovery.providers.sql`` with plain SQL and are not mapped here.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from discovery.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Social graph
# ---------------------------------------------------------------------------


class UserRelationship(Base):
    """Maps to the 'user_relationships' table (directed follow edges)."""

    __tablename__ = "user_relationships"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_user_relationships_pair"),
        CheckConstraint("follower_id <> following_id", name="ck_user_relationships_no_self"),
        Index("idx_user_relationships_following", "following_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    follower_id: Mapped[str] = mapped_column(String(64), nullable=False)
    following_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Activity ledger
# ---------------------------------------------------------------------------


class ActivityFeedEntry(Base):
    """Maps to the 'activity_feed' table. Rows are never updated."""

    __tablename__ = "activity_feed"
    __table_args__ = (
        CheckConstraint("visibility IN ('public', 'friends', 'private')", name="ck_activity_feed_visibility"),
        Index("idx_activity_feed_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    activity_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONB, server_default="{}")
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, server_default="friends")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class RecommendationRow(Base):
    """Maps to the 'recommendations' table."""

    __tablename__ = "recommendations"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "recommendation_type", name="uq_recommendations_user_course_type"),
        CheckConstraint("match_score BETWEEN 0 AND 100", name="ck_recommendations_score"),
        CheckConstraint(
            "recommendation_type IN ('collaborative_filtering', 'skill_adjacency', 'social_signal', 'trending')",
            name="ck_recommendations_type",
        ),
        Index("idx_recommendations_user_score", "user_id", "match_score"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    recommendation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    match_score: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    rec_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONB, server_default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Trending cache
# ---------------------------------------------------------------------------


class TrendingCourse(Base):
    """Maps to the 'trending_courses' table. Replaced wholesale on refresh."""

    __tablename__ = "trending_courses"
    __table_args__ = (
        UniqueConstraint("course_id", name="uq_trending_courses_course"),
        UniqueConstraint("rank", name="uq_trending_courses_rank"),
        CheckConstraint("velocity >= 0", name="ck_trending_courses_velocity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    velocity: Mapped[float] = mapped_column(Float, nullable=False)
    signups_24h: Mapped[int] = mapped_column(Integer, nullable=False)
    signups_previous_24h: Mapped[int] = mapped_column(Integer, nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    meta_category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class UserAchievement(Base):
    """Maps to the 'user_achievements' table. Write-once per (user, achievement)."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
