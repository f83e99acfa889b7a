"""Persistence ports and their PostgreSQL, Redis and in-memory adapters."""

from discovery.stores.base import (
    AchievementStore,
    ActivityStore,
    RecommendationStore,
    RelationshipStore,
    Stores,
    TrendingStore,
)

__all__ = [
    "AchievementStore",
    "ActivityStore",
    "RecommendationStore",
    "RelationshipStore",
    "Stores",
    "TrendingStore",
]
