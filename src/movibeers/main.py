"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

from arq import create_pool
from arq.connections import RedisSettings
from fastapi import FastAPI

from movibeers.config import get_settings
from movibeers.feed.router import router as feed_router
from movibeers.health.router import router as health_router
from movibeers.middleware import setup_middleware
from movibeers.redis_client import close_redis, init_redis
from movibeers.services import build_services, create_store
from movibeers.social.notification_router import router as notification_router
from movibeers.social.router import router as users_router
from movibeers.tracking.router import router as tracking_router
from movibeers.workers.queue import ArqTaskQueue, TaskQueue
from movibeers.ws.bridge import PubSubBridge
from movibeers.ws.manager import manager
from movibeers.ws.router import router as ws_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle.

    A ``services`` object already on ``app.state`` (tests) is used as is.
    """
    if getattr(app.state, "services", None) is not None:
        yield
        return

    settings = get_settings()
    store = create_store(settings)
    manager.max_per_user = settings.ws_max_connections_per_user

    bridge_task: asyncio.Task[None] | None = None
    bridge: PubSubBridge | None = None
    redis = await init_redis(settings.redis_url)
    if redis is not None:
        bridge = PubSubBridge(redis)
        bridge_task = asyncio.create_task(bridge.start())

    tasks: TaskQueue | None = None
    arq_pool = None
    if settings.arq_redis_url and settings.store_backend != "memory":
        arq_pool = await create_pool(RedisSettings.from_dsn(settings.arq_redis_url))
        tasks = ArqTaskQueue(arq_pool)
    else:
        logger.info("Background jobs run inline (memory store or no arq Redis)")

    app.state.services = build_services(settings, store, redis=redis, tasks=tasks)

    yield

    if bridge is not None and bridge_task is not None:
        await bridge.stop()
        bridge_task.cancel()
        with suppress(asyncio.CancelledError):
            await bridge_task
    if arq_pool is not None:
        await arq_pool.aclose()
    await close_redis()
    await store.close()
    app.state.services = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="MoviBeers API",
        description="Track beers and movies, follow friends, and see what they logged this week",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(tracking_router)
    app.include_router(feed_router)
    app.include_router(notification_router)
    app.include_router(ws_router)

    return app


app = create_app()
