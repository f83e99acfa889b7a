"""Health, readiness, and version endpoints."""

from fastapi import APIRouter
from sqlalchemy import text

from discovery.config import get_settings
from discovery.database import get_session_factory
from discovery.redis_client import get_redis_or_none

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness() -> dict[str, object]:
    """Readiness probe: checks the backends the configured stores depend on."""
    settings = get_settings()
    checks: dict[str, object] = {}

    if settings.store_backend == "postgres" or settings.trending_backend == "postgres":
        try:
            async with get_session_factory()() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
            checks["database"] = "ok"
        except Exception as exc:
            checks["database"] = f"error: {exc}"

    redis = get_redis_or_none()
    if redis is not None:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"
    elif settings.trending_backend == "redis":
        checks["redis"] = "error: not initialized"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
