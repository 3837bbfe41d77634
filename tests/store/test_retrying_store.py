"""Tests for transient-failure retry around a store."""

from unittest.mock import AsyncMock

import pytest

from movibeers.store import (
    AlreadyExists,
    DocumentNotFound,
    RecordStore,
    RetryingStore,
    TransientStoreError,
)


@pytest.fixture
def inner() -> AsyncMock:
    return AsyncMock(spec=RecordStore)


def _retrying(inner: AsyncMock, attempts: int = 3) -> RetryingStore:
    return RetryingStore(inner, attempts=attempts, base_delay=0, max_delay=0)


class TestRetry:
    @pytest.mark.asyncio
    async def test_transient_then_success(self, inner):
        inner.get.side_effect = [TransientStoreError("blip"), None]
        assert await _retrying(inner).get("users", "u") is None
        assert inner.get.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, inner):
        inner.count.side_effect = TransientStoreError("down")
        with pytest.raises(TransientStoreError):
            await _retrying(inner, attempts=3).count("users", None)
        assert inner.count.await_count == 3

    @pytest.mark.asyncio
    async def test_permanent_errors_not_retried(self, inner):
        inner.update.side_effect = DocumentNotFound("users", "u")
        with pytest.raises(DocumentNotFound):
            await _retrying(inner).update("users", "u", {})
        assert inner.update.await_count == 1

    @pytest.mark.asyncio
    async def test_insert_reuses_generated_id(self, inner):
        inner.insert.side_effect = [TransientStoreError("timeout"), "abc"]
        await _retrying(inner).insert("beers", {"title": "Lager"})
        first_id = inner.insert.await_args_list[0].args[2]
        second_id = inner.insert.await_args_list[1].args[2]
        assert first_id == second_id

    @pytest.mark.asyncio
    async def test_insert_conflict_after_retry_counts_as_success(self, inner):
        inner.insert.side_effect = [TransientStoreError("timeout"), AlreadyExists("beers", "x")]
        doc_id = await _retrying(inner).insert("beers", {"title": "Lager"})
        assert doc_id == inner.insert.await_args_list[0].args[2]

    @pytest.mark.asyncio
    async def test_insert_conflict_on_explicit_id_propagates(self, inner):
        inner.insert.side_effect = [TransientStoreError("timeout"), AlreadyExists("posts", "beer_1")]
        with pytest.raises(AlreadyExists):
            await _retrying(inner).insert("posts", {}, doc_id="beer_1")
