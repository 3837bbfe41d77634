"""Tests for the username fan-out job."""

import pytest

from movibeers.models import POSTS, USERS
from movibeers.social.fanout import UsernameFanout
from movibeers.store import Query


class TestUsernameFanout:
    @pytest.mark.asyncio
    async def test_rewrites_in_pages(self, services, store, alice):
        for name in ("One", "Two", "Three"):
            await services.tracker.add_beer("alice", name)
        await store.update(USERS, "alice", {"username": "renamed"})

        fanout = UsernameFanout(store, batch_size=2)
        assert await fanout.run("alice", "renamed") == 3

        posts = await store.query(POSTS, Query().where("userId", "==", "alice"))
        assert {r.data["username"] for r in posts} == {"renamed"}

    @pytest.mark.asyncio
    async def test_rerun_skips_current_documents(self, services, store, alice):
        await services.tracker.add_beer("alice", "Lager")
        await store.update(USERS, "alice", {"username": "renamed"})
        fanout = UsernameFanout(store)
        assert await fanout.run("alice", "renamed") == 1
        assert await fanout.run("alice", "renamed") == 0

    @pytest.mark.asyncio
    async def test_superseded_job_does_nothing(self, services, store, alice):
        await services.tracker.add_beer("alice", "Lager")
        fanout = UsernameFanout(store)
        assert await fanout.run("alice", "old_name") == 0

    @pytest.mark.asyncio
    async def test_other_users_untouched(self, services, store, alice, bob):
        await services.tracker.add_beer("bob", "Stout")
        await store.update(USERS, "alice", {"username": "renamed"})
        await UsernameFanout(store).run("alice", "renamed")
        bob_posts = await store.query(POSTS, Query().where("userId", "==", "bob"))
        assert bob_posts[0].data["username"] == "bob"
