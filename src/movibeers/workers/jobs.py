"""arq background jobs: username fan-out, follow-graph repair, weekly rollover.

Run with: arq movibeers.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging
from zoneinfo import ZoneInfo

from arq import cron
from arq.connections import RedisSettings

from movibeers.config import get_settings
from movibeers.middleware.logging import setup_logging
from movibeers.services import build_services, create_store
from movibeers.workers.queue import ArqTaskQueue

logger = logging.getLogger(__name__)

SUNDAY = 6


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Build the store and services once per worker process."""
    settings = get_settings()
    setup_logging(settings, component="worker")
    store = create_store(settings)
    ctx["store"] = store
    ctx["services"] = build_services(settings, store, tasks=ArqTaskQueue(ctx["redis"]))
    logger.info("Worker started (store backend: %s)", settings.store_backend)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    store = ctx.get("store")
    if store is not None:
        await store.close()
    logger.info("Worker shut down")


async def propagate_username(ctx: dict, user_id: str, username: str) -> int:  # type: ignore[type-arg]
    """Rewrite the denormalized username on the user's posts and sent notifications."""
    return await ctx["services"].fanout.run(user_id, username)


async def reconcile_follow_graph(ctx: dict, user_id: str | None = None) -> int:  # type: ignore[type-arg]
    """Repair mirrored follow lists for one user, or everyone when no id is given."""
    graph = ctx["services"].graph
    fixes = await graph.reconcile(user_id) if user_id else await graph.reconcile_all()
    logger.info("Follow graph reconciliation applied %d fixes", fixes)
    return fixes


async def roll_over_week(ctx: dict) -> int:  # type: ignore[type-arg]
    """Archive last week and reset weekly counters for every user."""
    return await ctx["services"].rollover.run()


class WorkerSettings:
    """arq worker settings for MoviBeers background jobs."""

    functions = [propagate_username, reconcile_follow_graph, roll_over_week]
    cron_jobs = [
        # Sunday 00:05 in the week time zone, just after the week boundary
        cron(roll_over_week, weekday=SUNDAY, hour=0, minute=5, run_at_startup=False),
        cron(reconcile_follow_graph, hour=3, minute=30),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    on_startup = startup
    on_shutdown = shutdown
    timezone = ZoneInfo(get_settings().week_timezone)
    max_jobs = 10
    job_timeout = 600

