"""Construction of the service graph.

Each component receives its collaborators explicitly; the application keeps
one ``Services`` instance on ``app.state`` and workers build their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo

from movibeers.clock import Clock, utcnow
from movibeers.config import Settings
from movibeers.feed.publisher import FeedPublisher
from movibeers.feed.reader import FeedReader
from movibeers.social.fanout import PROPAGATE_USERNAME_JOB, UsernameFanout
from movibeers.social.graph import SocialGraph
from movibeers.social.interactions import InteractionAggregator
from movibeers.social.notifications import NotificationDispatcher
from movibeers.social.profiles import ProfileService
from movibeers.store import MemoryRecordStore, RecordStore, RetryingStore
from movibeers.tracking.rollover import WeekRollover
from movibeers.tracking.service import ActivityTracker
from movibeers.tracking.suggestions import SuggestionService
from movibeers.tracking.week import WeekCalculator
from movibeers.workers.queue import InlineTaskQueue, TaskQueue


def create_store(settings: Settings) -> RecordStore:
    """Backend chosen by ``MB_STORE_BACKEND``, wrapped in transient-error retry."""
    if settings.store_backend == "memory":
        inner: RecordStore = MemoryRecordStore()
    elif settings.store_backend == "sql":
        from movibeers.store.sql import SqlRecordStore

        inner = SqlRecordStore.from_url(settings.database_url)
    else:
        msg = f"Unknown store backend: {settings.store_backend}"
        raise ValueError(msg)
    return RetryingStore(
        inner,
        attempts=settings.store_retry_attempts,
        base_delay=settings.store_retry_base_delay,
        max_delay=settings.store_retry_max_delay,
    )


@dataclass
class Services:
    store: RecordStore
    tasks: TaskQueue
    profiles: ProfileService
    tracker: ActivityTracker
    suggestions: SuggestionService
    publisher: FeedPublisher
    feed: FeedReader
    graph: SocialGraph
    interactions: InteractionAggregator
    notifications: NotificationDispatcher
    rollover: WeekRollover
    fanout: UsernameFanout


def build_services(
    settings: Settings,
    store: RecordStore,
    redis: Any | None = None,  # noqa: ANN401
    tasks: TaskQueue | None = None,
    clock: Clock = utcnow,
) -> Services:
    """Wire every component. Without ``tasks``, background jobs run inline."""
    tz = ZoneInfo(settings.week_timezone)
    fanout = UsernameFanout(store, batch_size=settings.fanout_batch_size)
    if tasks is None:
        tasks = InlineTaskQueue({PROPAGATE_USERNAME_JOB: fanout.run})

    notifications = NotificationDispatcher(store, redis=redis, clock=clock)
    publisher = FeedPublisher(store)
    return Services(
        store=store,
        tasks=tasks,
        profiles=ProfileService(store, tasks, clock=clock, tz=tz),
        tracker=ActivityTracker(store, WeekCalculator(store, tz, clock), publisher, clock=clock),
        suggestions=SuggestionService(store),
        publisher=publisher,
        feed=FeedReader(
            store,
            in_query_chunk=settings.feed_in_query_chunk,
            max_page_size=settings.feed_max_page_size,
        ),
        graph=SocialGraph(store, notifications),
        interactions=InteractionAggregator(store, notifications, clock=clock),
        notifications=notifications,
        rollover=WeekRollover(
            store,
            tz,
            beer_goal=settings.weekly_beer_goal,
            movie_goal=settings.weekly_movie_goal,
            clock=clock,
        ),
        fanout=fanout,
    )
