"""Wires stores, providers and settings into the engine's services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from redis.asyncio import Redis

from discovery.achievements.evaluator import AchievementEvaluator
from discovery.config import Settings
from discovery.profile.service import ProfileService
from discovery.providers.base import IdentityProvider, ProgressProvider
from discovery.recommendations.service import RecommendationService
from discovery.recommendations.skill_graph import SKILL_GRAPH, SkillGraph
from discovery.recommendations.strategies import (
    CollaborativeFilteringStrategy,
    SkillAdjacencyStrategy,
    SocialSignalStrategy,
    Strategy,
    TrendingStrategy,
)
from discovery.social.activity import ActivityLedger
from discovery.social.graph import SocialGraph
from discovery.stores.base import Stores
from discovery.trending.service import TrendingService


def build_strategies(
    stores: Stores,
    progress: ProgressProvider,
    settings: Settings,
    skill_graph: SkillGraph = SKILL_GRAPH,
) -> list[Strategy]:
    return [
        CollaborativeFilteringStrategy(
            progress,
            min_overlap=settings.cf_min_overlap,
            max_similar_users=settings.cf_max_similar_users,
            max_results=settings.cf_max_results,
            base_score=settings.cf_base_score,
            expiry=timedelta(days=settings.cf_expiry_days),
        ),
        SkillAdjacencyStrategy(
            progress,
            graph=skill_graph,
            max_results=settings.skill_max_results,
            score_bands=settings.skill_score_bands,
            expiry=timedelta(days=settings.skill_expiry_days),
        ),
        SocialSignalStrategy(
            stores.relationships,
            progress,
            min_following=settings.social_min_following,
            max_results=settings.social_max_results,
            base_score=settings.social_base_score,
            expiry=timedelta(days=settings.social_expiry_days),
        ),
        TrendingStrategy(
            stores.trending,
            count=settings.trending_recommendation_count,
            expiry=timedelta(hours=settings.trending_expiry_hours),
        ),
    ]


@dataclass
class DiscoveryEngine:
    stores: Stores
    progress: ProgressProvider
    identity: IdentityProvider | None
    ledger: ActivityLedger
    graph: SocialGraph
    recommendations: RecommendationService
    trending: TrendingService
    achievements: AchievementEvaluator
    profiles: ProfileService

    @classmethod
    def build(
        cls,
        stores: Stores,
        progress: ProgressProvider,
        settings: Settings,
        identity: IdentityProvider | None = None,
        redis: Redis | None = None,
        strategies: list[Strategy] | None = None,
    ) -> DiscoveryEngine:
        ledger = ActivityLedger(
            stores.activities,
            default_limit=settings.feed_default_limit,
            max_limit=settings.feed_max_limit,
        )
        graph = SocialGraph(stores.relationships, ledger)
        achievements = AchievementEvaluator(
            stores.achievements, progress, ledger, redis=redis, timeout=settings.store_timeout_seconds,
        )
        return cls(
            stores=stores,
            progress=progress,
            identity=identity,
            ledger=ledger,
            graph=graph,
            recommendations=RecommendationService(
                stores.recommendations,
                strategies if strategies is not None else build_strategies(stores, progress, settings),
            ),
            trending=TrendingService(
                stores.trending,
                progress,
                snapshot_size=settings.trending_snapshot_size,
                read_limit=settings.trending_read_limit,
                cold_start_velocity=settings.trending_cold_start_velocity,
            ),
            achievements=achievements,
            profiles=ProfileService(graph, achievements, progress, identity),
        )
