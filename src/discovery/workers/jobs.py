"""arq jobs: hourly trending refresh and batch regeneration for active users.

Runs as a separate process next to the API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from arq import cron
from arq.connections import RedisSettings

from discovery.config import get_settings
from discovery.database import close_db, init_db
from discovery.dependencies import build_engine
from discovery.engine import DiscoveryEngine
from discovery.errors import DiscoveryError
from discovery.middleware.logging import setup_logging
from discovery.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize connections and build the engine on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    if "postgres" in (settings.store_backend, settings.trending_backend):
        await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    ctx["engine"] = build_engine(settings)
    logger.info("Discovery worker started (store=%s, trending=%s)", settings.store_backend, settings.trending_backend)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    ctx.pop("engine", None)
    await close_db()
    await close_redis()
    logger.info("Discovery worker shut down")


async def refresh_trending(ctx: dict) -> int:  # type: ignore[type-arg]
    """Recompute the trending snapshot. Returns the number of ranked courses."""
    engine: DiscoveryEngine = ctx["engine"]
    snapshot = await engine.trending.refresh()
    return len(snapshot)


async def _active_users(engine: DiscoveryEngine) -> list[str]:
    settings = get_settings()
    since = datetime.now(timezone.utc) - timedelta(hours=settings.worker_active_user_window_hours)
    return await engine.progress.active_users(since, settings.worker_max_users_per_run)


async def regenerate_recommendations(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Regenerate recommendations for recently active users.

    A user whose generation fails is logged and skipped.
    """
    engine: DiscoveryEngine = ctx["engine"]
    users = await _active_users(engine)
    summary = {"users": len(users), "written": 0, "failed": 0}
    for user_id in users:
        try:
            report = await engine.recommendations.generate(user_id)
        except DiscoveryError:
            logger.warning("Recommendation refresh failed for user %s", user_id, exc_info=True)
            summary["failed"] += 1
            continue
        summary["written"] += report.written
        if not report.ok:
            summary["failed"] += 1
    logger.info("Regenerated recommendations for %d users (%d rows)", summary["users"], summary["written"])
    return summary


async def evaluate_achievements(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Sweep achievements for recently active users."""
    engine: DiscoveryEngine = ctx["engine"]
    users = await _active_users(engine)
    summary = {"users": len(users), "unlocked": 0, "failed": 0}
    for user_id in users:
        try:
            earned = await engine.achievements.evaluate(user_id)
        except DiscoveryError:
            logger.warning("Achievement sweep failed for user %s", user_id, exc_info=True)
            summary["failed"] += 1
            continue
        summary["unlocked"] += sum(1 for e in earned if e.new)
    return summary


class WorkerSettings:
    """arq worker settings for the discovery jobs.

    Import path for the arq CLI: ``arq discovery.workers.jobs.WorkerSettings``
    """

    functions = [refresh_trending, regenerate_recommendations, evaluate_achievements]
    cron_jobs = [
        cron(refresh_trending, minute=0, run_at_startup=True),
        cron(regenerate_recommendations, minute=15),
        cron(evaluate_achievements, minute=45),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 4
    job_timeout = 1800
