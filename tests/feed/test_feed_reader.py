"""Tests for feed resolution and paging."""

from datetime import datetime

import pytest

from movibeers.errors import NotFound, ValidationFailed
from movibeers.feed.pagination import encode_cursor
from movibeers.feed.reader import FeedReader


async def _post_beers(services, user_id: str, count: int, prefix: str = "Beer") -> list[str]:
    titles = []
    for i in range(count):
        title = f"{prefix} {i}"
        await services.tracker.add_beer(user_id, title)
        titles.append(title)
    return titles


class TestFeedMembership:
    @pytest.mark.asyncio
    async def test_own_posts_always_included(self, services, alice):
        await services.tracker.add_beer("alice", "Lager")
        page = await services.feed.get_feed("alice")
        assert [p.title for p in page.posts] == ["Lager"]
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_follow_and_unfollow_change_feed(self, services, alice, bob):
        await services.tracker.add_beer("alice", "Alice Beer")
        await services.tracker.add_movie("bob", "Bob Movie")

        assert [p.title for p in (await services.feed.get_feed("alice")).posts] == ["Alice Beer"]

        await services.graph.follow("alice", "bob")
        page = await services.feed.get_feed("alice")
        assert [p.title for p in page.posts] == ["Bob Movie", "Alice Beer"]
        assert page.posts[0].username == "bob"

        await services.graph.unfollow("alice", "bob")
        assert [p.title for p in (await services.feed.get_feed("alice")).posts] == ["Alice Beer"]

    @pytest.mark.asyncio
    async def test_following_is_not_symmetric(self, services, alice, bob):
        await services.tracker.add_beer("alice", "Alice Beer")
        await services.graph.follow("bob", "alice")
        assert [p.title for p in (await services.feed.get_feed("alice")).posts] == ["Alice Beer"]
        assert len((await services.feed.get_feed("bob")).posts) == 1

    @pytest.mark.asyncio
    async def test_authors_split_across_in_queries(self, services, store, alice, bob, carol):
        await services.graph.follow("alice", "bob")
        await services.graph.follow("alice", "carol")
        for user_id in ("carol", "alice", "bob", "carol"):
            await services.tracker.add_beer(user_id, f"From {user_id}")

        reader = FeedReader(store, in_query_chunk=1)
        page = await reader.get_feed("alice", limit=3)
        assert [p.user_id for p in page.posts] == ["carol", "bob", "alice"]
        assert page.has_more is True

    @pytest.mark.asyncio
    async def test_unknown_user(self, services):
        with pytest.raises(NotFound):
            await services.feed.get_feed("ghost")


class TestPaging:
    @pytest.mark.asyncio
    async def test_cursor_walks_whole_feed(self, services, alice):
        titles = await _post_beers(services, "alice", 5)

        seen = []
        cursor = None
        while True:
            page = await services.feed.get_feed("alice", limit=2, cursor=cursor)
            seen.extend(p.title for p in page.posts)
            if not page.has_more:
                assert page.next_cursor is None
                break
            cursor = page.next_cursor

        assert seen == list(reversed(titles))

    @pytest.mark.asyncio
    async def test_cursor_without_timezone_is_utc(self, services, alice):
        titles = await _post_beers(services, "alice", 3)

        page = await services.feed.get_feed("alice", cursor=encode_cursor(datetime(2030, 1, 1), "x"))
        assert [p.title for p in page.posts] == list(reversed(titles))

        page = await services.feed.get_feed("alice", cursor=encode_cursor(datetime(2020, 1, 1), "x"))
        assert page.posts == []

    @pytest.mark.asyncio
    async def test_exact_page_boundary(self, services, alice):
        await _post_beers(services, "alice", 2)
        page = await services.feed.get_feed("alice", limit=2)
        assert len(page.posts) == 2
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_load_more_returns_next_slice(self, services, alice):
        titles = list(reversed(await _post_beers(services, "alice", 5)))

        page = await services.feed.load_more("alice", current_count=2, page_increment=2)
        assert [p.title for p in page.posts] == titles[2:4]
        assert page.has_more is True

        last = await services.feed.load_more("alice", current_count=4, page_increment=2)
        assert [p.title for p in last.posts] == titles[4:]
        assert last.has_more is False

    @pytest.mark.asyncio
    async def test_invalid_limit(self, services, alice):
        with pytest.raises(ValidationFailed):
            await services.feed.get_feed("alice", limit=0)
        with pytest.raises(ValidationFailed):
            await services.feed.load_more("alice", current_count=-1)

    @pytest.mark.asyncio
    async def test_limit_capped(self, services, store, alice):
        await _post_beers(services, "alice", 3)
        reader = FeedReader(store, max_page_size=2)
        page = await reader.get_feed("alice", limit=50)
        assert len(page.posts) == 2
        assert page.has_more is True


class TestPosts:
    @pytest.mark.asyncio
    async def test_user_posts_only_author(self, services, alice, bob):
        await services.tracker.add_beer("alice", "Alice Beer")
        await services.tracker.add_beer("bob", "Bob Beer")
        page = await services.feed.get_user_posts("bob")
        assert [p.title for p in page.posts] == ["Bob Beer"]

    @pytest.mark.asyncio
    async def test_get_post(self, services, alice):
        beer = await services.tracker.add_beer("alice", "Lager")
        post = await services.feed.get_post(f"beer_{beer.id}")
        assert post.item_id == beer.id
        with pytest.raises(NotFound):
            await services.feed.get_post("beer_missing")
