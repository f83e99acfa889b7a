"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from discovery.achievements.router import router as achievements_router
from discovery.config import get_settings
from discovery.database import close_db, init_db
from discovery.dependencies import close_engine, init_engine
from discovery.health.router import router as health_router
from discovery.middleware import setup_middleware
from discovery.profile.router import router as profile_router
from discovery.recommendations.router import router as recommendations_router
from discovery.redis_client import close_redis, init_redis
from discovery.social.router import router as social_router
from discovery.trending.router import router as trending_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    if "postgres" in (settings.store_backend, settings.trending_backend):
        await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    init_engine(settings)

    yield

    close_engine()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Discovery & Engagement API",
        description="Recommendations, trending courses, activity feed and achievements",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(social_router)
    app.include_router(recommendations_router)
    app.include_router(trending_router)
    app.include_router(achievements_router)
    app.include_router(profile_router)

    return app


app = create_app()
