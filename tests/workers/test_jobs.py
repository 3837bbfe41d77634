"""Tests for background jobs and the task queues."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from movibeers.models import USERS, WEEKLY_STATS, weekly_stats_id
from movibeers.workers.jobs import (
    WorkerSettings,
    propagate_username,
    reconcile_follow_graph,
    roll_over_week,
)
from movibeers.workers.queue import ArqTaskQueue, InlineTaskQueue


class TestQueues:
    @pytest.mark.asyncio
    async def test_inline_runs_handler(self):
        handler = AsyncMock(return_value=3)
        queue = InlineTaskQueue({"job": handler})
        await queue.enqueue("job", "a", 1)
        handler.assert_awaited_once_with("a", 1)
        assert queue.calls == [("job", ("a", 1))]

    @pytest.mark.asyncio
    async def test_inline_unknown_job_dropped(self):
        queue = InlineTaskQueue()
        await queue.enqueue("missing", "x")
        assert queue.calls == [("missing", ("x",))]

    @pytest.mark.asyncio
    async def test_arq_enqueues_on_pool(self):
        pool = AsyncMock()
        await ArqTaskQueue(pool).enqueue("propagate_username", "alice", "alice_v2")
        pool.enqueue_job.assert_awaited_once_with("propagate_username", "alice", "alice_v2")


class TestJobs:
    @pytest.mark.asyncio
    async def test_propagate_username(self, services, store, alice):
        await services.tracker.add_beer("alice", "Lager")
        await store.update(USERS, "alice", {"username": "renamed"})
        assert await propagate_username({"services": services}, "alice", "renamed") == 1

    @pytest.mark.asyncio
    async def test_reconcile_one_and_all(self, services, store, alice, bob):
        await services.graph.follow("alice", "bob")
        await store.update(USERS, "bob", {"followers": []})
        ctx = {"services": services}
        assert await reconcile_follow_graph(ctx, "alice") == 1
        assert await reconcile_follow_graph(ctx) == 0

    @pytest.mark.asyncio
    async def test_roll_over_week(self, services, store, clock, alice):
        clock.set(datetime(2026, 10, 18, 0, 5, tzinfo=timezone.utc))
        assert await roll_over_week({"services": services}) == 1
        assert await store.get(WEEKLY_STATS, weekly_stats_id("alice", date(2026, 10, 11))) is not None

    def test_worker_registers_jobs(self):
        names = {f.__name__ for f in WorkerSettings.functions}
        assert names == {"propagate_username", "reconcile_follow_graph", "roll_over_week"}
        assert len(WorkerSettings.cron_jobs) == 2
