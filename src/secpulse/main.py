"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from secpulse import __version__
from secpulse.config import settings
from secpulse.db.engine import create_db_engine, create_session_factory
from secpulse.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage database, Redis, job consumers and the sync scheduler."""
    from secpulse.sync.context import SyncContext
    from secpulse.workers.consumer import start_consumers
    from secpulse.workers.scheduler import SyncScheduler

    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev, no migrations)
    if "sqlite" in db_url:
        from secpulse.db.base import Base
        import secpulse.db.models  # noqa: F401 register all ORM models

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    session_factory = create_session_factory(engine)

    # Redis backs the job queue, cache and broadcast channel; skipped in local mode
    redis = None
    if not settings.local_mode:
        try:
            import redis.asyncio as aioredis

            redis = aioredis.from_url(settings.redis_url, decode_responses=True)
        except Exception:
            logger.warning("Redis not available, using in-process job queue")

    ctx = SyncContext.build(settings, session_factory, redis)
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory
    app.state.redis = redis
    app.state.sync_context = ctx

    await ctx.manager.initialize()

    consumers = start_consumers(ctx, settings.worker_concurrency)
    scheduler = SyncScheduler(ctx)
    if settings.scheduler_enabled:
        await scheduler.start()
    app.state.scheduler = scheduler

    logger.info(
        "SecPulse sync started (db=%s, queue=%s)",
        "sqlite" if "sqlite" in db_url else "postgresql",
        "redis" if redis is not None else "local",
    )
    yield

    # Shutdown
    await scheduler.stop()
    for task in consumers:
        task.cancel()
    await asyncio.gather(*consumers, return_exceptions=True)
    if redis is not None:
        await redis.aclose()
    await engine.dispose()
    logger.info("SecPulse sync shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="SecPulse Sync API",
        version=__version__,
        description="Security-tool synchronization and normalization pipeline for the executive security dashboard.",
        lifespan=lifespan,
    )

    from secpulse.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    from secpulse.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from secpulse.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
