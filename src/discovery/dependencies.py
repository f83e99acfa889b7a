"""Engine construction per configured backend, and the FastAPI dependency for it."""

from __future__ import annotations

from discovery.config import Settings
from discovery.database import get_session_factory
from discovery.engine import DiscoveryEngine
from discovery.providers.memory import MemoryIdentityProvider, MemoryProgressProvider
from discovery.providers.sql import SqlIdentityProvider, SqlProgressProvider
from discovery.redis_client import get_redis, get_redis_or_none
from discovery.stores.base import Stores, TrendingStore
from discovery.stores.memory import MemoryTrendingStore, build_memory_stores
from discovery.stores.redis_trending import RedisTrendingStore
from discovery.stores.sql import SqlTrendingStore, build_sql_stores

STORE_BACKENDS = ("postgres", "memory")
TRENDING_BACKENDS = ("postgres", "redis", "memory")

_engine: DiscoveryEngine | None = None


def _trending_store(settings: Settings) -> TrendingStore:
    if settings.trending_backend == "redis":
        return RedisTrendingStore(get_redis(), settings.store_timeout_seconds, settings.trending_redis_grace_seconds)
    if settings.trending_backend == "memory":
        return MemoryTrendingStore()
    if settings.trending_backend == "postgres":
        return SqlTrendingStore(get_session_factory(), settings.store_timeout_seconds)
    msg = f"Unknown trending backend: {settings.trending_backend}"
    raise ValueError(msg)


def build_engine(settings: Settings) -> DiscoveryEngine:
    """Build the engine for the configured backends.

    The database and Redis must already be initialized for the backends that
    need them.
    """
    if settings.store_backend not in STORE_BACKENDS:
        msg = f"Unknown store backend: {settings.store_backend}"
        raise ValueError(msg)

    trending = _trending_store(settings)
    if settings.store_backend == "memory":
        stores: Stores = build_memory_stores(trending)
        return DiscoveryEngine.build(
            stores,
            MemoryProgressProvider(),
            settings,
            identity=MemoryIdentityProvider(),
            redis=get_redis_or_none(),
        )

    factory = get_session_factory()
    stores = build_sql_stores(factory, settings.store_timeout_seconds, trending)
    return DiscoveryEngine.build(
        stores,
        SqlProgressProvider(factory, settings.store_timeout_seconds),
        settings,
        identity=SqlIdentityProvider(factory, settings.store_timeout_seconds),
        redis=get_redis_or_none(),
    )


def init_engine(settings: Settings) -> DiscoveryEngine:
    global _engine  # noqa: PLW0603
    _engine = build_engine(settings)
    return _engine


def close_engine() -> None:
    global _engine  # noqa: PLW0603
    _engine = None


def get_discovery() -> DiscoveryEngine:
    """Get the engine (FastAPI dependency)."""
    if _engine is None:
        msg = "Engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine
