"""Discovery tables.

Creates user_relationships, activity_feed, recommendations, trending_courses
and user_achievements.

Revision ID: 001_discovery_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_discovery_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Social graph ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_relationships (
            id VARCHAR(36) PRIMARY KEY,
            follower_id VARCHAR(64) NOT NULL,
            following_id VARCHAR(64) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_relationships_pair UNIQUE (follower_id, following_id),
            CONSTRAINT ck_user_relationships_no_self CHECK (follower_id <> following_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_relationships_following
        ON user_relationships(following_id)
    """)

    # --- Activity ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS activity_feed (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            activity_type VARCHAR(50) NOT NULL,
            reference_type VARCHAR(50),
            reference_id VARCHAR(64),
            metadata JSONB NOT NULL DEFAULT '{}',
            visibility VARCHAR(20) NOT NULL DEFAULT 'friends',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_activity_feed_visibility CHECK (visibility IN ('public', 'friends', 'private'))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_activity_feed_user_created
        ON activity_feed(user_id, created_at)
    """)

    # --- Recommendations ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS recommendations (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            course_id VARCHAR(64) NOT NULL,
            recommendation_type VARCHAR(50) NOT NULL,
            match_score INTEGER NOT NULL,
            reason TEXT NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ,
            CONSTRAINT uq_recommendations_user_course_type UNIQUE (user_id, course_id, recommendation_type),
            CONSTRAINT ck_recommendations_score CHECK (match_score BETWEEN 0 AND 100),
            CONSTRAINT ck_recommendations_type CHECK (recommendation_type IN (
                'collaborative_filtering', 'skill_adjacency', 'social_signal', 'trending'
            ))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_recommendations_user_score
        ON recommendations(user_id, match_score)
    """)

    # --- Trending cache ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS trending_courses (
            id VARCHAR(36) PRIMARY KEY,
            course_id VARCHAR(64) NOT NULL,
            velocity DOUBLE PRECISION NOT NULL,
            signups_24h INTEGER NOT NULL,
            signups_previous_24h INTEGER NOT NULL,
            rank INTEGER NOT NULL,
            meta_category VARCHAR(50),
            calculated_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT uq_trending_courses_course UNIQUE (course_id),
            CONSTRAINT uq_trending_courses_rank UNIQUE (rank),
            CONSTRAINT ck_trending_courses_velocity CHECK (velocity >= 0)
        )
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            achievement_id VARCHAR(64) NOT NULL,
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievements_user_achievement UNIQUE (user_id, achievement_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_achievements_user_id
        ON user_achievements(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_achievements")
    op.execute("DROP TABLE IF EXISTS trending_courses")
    op.execute("DROP TABLE IF EXISTS recommendations")
    op.execute("DROP TABLE IF EXISTS activity_feed")
    op.execute("DROP TABLE IF EXISTS user_relationships")
