"""Bounded exponential-backoff retry around any record store.

Only ``TransientStoreError`` is retried. Not-found, conflict and permission
errors propagate on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from movibeers.store.base import (
    AlreadyExists,
    Query,
    Record,
    RecordStore,
    TransientStoreError,
    WriteOp,
    new_document_id,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryingStore(RecordStore):
    """Delegates to ``inner``, retrying transient failures.

    Increments are not idempotent: a retried update whose first attempt did
    land will double-count. Counters are display values, so this is accepted.
    """

    def __init__(
        self,
        inner: RecordStore,
        attempts: int = 3,
        base_delay: float = 0.05,
        max_delay: float = 1.0,
    ) -> None:
        self.inner = inner
        self.attempts = max(1, attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay

    async def _call(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        delay = self.base_delay
        attempt = 1
        while True:
            try:
                return await fn()
            except TransientStoreError as exc:
                if attempt >= self.attempts:
                    raise
                logger.warning("Store %s failed (%s), retry %d in %.2fs", name, exc, attempt, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_delay)
                attempt += 1

    async def insert(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        generated = doc_id is None
        doc_id = doc_id or new_document_id()
        attempts = 0

        async def op() -> str:
            nonlocal attempts
            attempts += 1
            try:
                return await self.inner.insert(collection, data, doc_id)
            except AlreadyExists:
                # A generated id colliding on a retry means the first attempt landed.
                if generated and attempts > 1:
                    return doc_id
                raise

        return await self._call("insert", op)

    async def get(self, collection: str, doc_id: str) -> Record | None:
        return await self._call("get", lambda: self.inner.get(collection, doc_id))

    async def query(self, collection: str, query: Query) -> list[Record]:
        return await self._call("query", lambda: self.inner.query(collection, query))

    async def count(self, collection: str, query: Query) -> int:
        return await self._call("count", lambda: self.inner.count(collection, query))

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        await self._call("update", lambda: self.inner.update(collection, doc_id, changes))

    async def delete(self, collection: str, doc_id: str) -> bool:
        return await self._call("delete", lambda: self.inner.delete(collection, doc_id))

    async def commit_batch(self, ops: list[WriteOp]) -> None:
        await self._call("batch", lambda: self.inner.commit_batch(ops))

    async def ping(self) -> None:
        await self.inner.ping()

    async def close(self) -> None:
        await self.inner.close()
