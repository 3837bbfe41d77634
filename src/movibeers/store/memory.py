"""In-process record store.

Backs tests and single-process development runs. All mutations are
serialized by one asyncio lock, so batches are genuinely atomic here.
"""

from __future__ import annotations

import asyncio
import copy
from collections import defaultdict
from functools import cmp_to_key
from typing import Any

from movibeers.store.base import (
    DOCUMENT_ID,
    AlreadyExists,
    DocumentNotFound,
    Filter,
    Query,
    Record,
    RecordStore,
    WriteOp,
    apply_changes,
    new_document_id,
)


def _field_value(record: Record, name: str) -> Any:  # noqa: ANN401
    return record.id if name == DOCUMENT_ID else record.data.get(name)


def _compare(a: Any, b: Any) -> int:  # noqa: ANN401
    """Total order with None sorting first."""
    if a is None or b is None:
        return (a is not None) - (b is not None)
    return (a > b) - (a < b)


def _matches(record: Record, flt: Filter) -> bool:
    value = _field_value(record, flt.field)
    if flt.op == "==":
        return value == flt.value
    if flt.op == "in":
        return value in flt.value
    if value is None:
        return False
    try:
        if flt.op == "<":
            return value < flt.value
        if flt.op == "<=":
            return value <= flt.value
        if flt.op == ">":
            return value > flt.value
        if flt.op == ">=":
            return value >= flt.value
    except TypeError:
        return False
    return False


def _sort(records: list[Record], ordering: tuple[tuple[str, bool], ...]) -> list[Record]:
    if not ordering:
        return sorted(records, key=lambda r: r.id)

    def cmp(a: Record, b: Record) -> int:
        for name, descending in ordering:
            result = _compare(_field_value(a, name), _field_value(b, name))
            if result:
                return -result if descending else result
        tie = _compare(a.id, b.id)
        return -tie if ordering[0][1] else tie

    return sorted(records, key=cmp_to_key(cmp))


def _after_cursor(record: Record, query: Query) -> bool:
    value, cursor_id = query.cursor  # type: ignore[misc]
    name, descending = query.ordering[0]
    result = _compare(_field_value(record, name), value) or _compare(record.id, cursor_id)
    return result < 0 if descending else result > 0


class MemoryRecordStore(RecordStore):
    """Dict-of-dicts store; documents are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._lock = asyncio.Lock()

    async def insert(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        async with self._lock:
            docs = self._collections[collection]
            doc_id = doc_id or new_document_id()
            if doc_id in docs:
                raise AlreadyExists(collection, doc_id)
            docs[doc_id] = copy.deepcopy(data)
            return doc_id

    async def get(self, collection: str, doc_id: str) -> Record | None:
        data = self._collections[collection].get(doc_id)
        if data is None:
            return None
        return Record(doc_id, copy.deepcopy(data))

    def _select(self, collection: str, query: Query) -> list[Record]:
        return [
            Record(doc_id, data)
            for doc_id, data in self._collections[collection].items()
            if all(_matches(Record(doc_id, data), flt) for flt in query.filters)
        ]

    async def query(self, collection: str, query: Query) -> list[Record]:
        records = _sort(self._select(collection, query), query.ordering)
        if query.cursor is not None:
            records = [r for r in records if _after_cursor(r, query)]
        if query.limit_to is not None:
            records = records[: query.limit_to]
        return [Record(r.id, copy.deepcopy(r.data)) for r in records]

    async def count(self, collection: str, query: Query) -> int:
        return len(self._select(collection, query))

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        async with self._lock:
            docs = self._collections[collection]
            if doc_id not in docs:
                raise DocumentNotFound(collection, doc_id)
            docs[doc_id] = apply_changes(docs[doc_id], changes)

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._lock:
            return self._collections[collection].pop(doc_id, None) is not None

    async def commit_batch(self, ops: list[WriteOp]) -> None:
        async with self._lock:
            # Stage every write first so a failing op leaves nothing applied.
            staged: dict[tuple[str, str], dict[str, Any] | None] = {}
            for op in ops:
                key = (op.collection, op.doc_id)
                current = staged[key] if key in staged else self._collections[op.collection].get(op.doc_id)
                if op.kind == "create":
                    if current is not None:
                        raise AlreadyExists(op.collection, op.doc_id)
                    staged[key] = copy.deepcopy(op.data)
                elif op.kind == "update":
                    if current is None:
                        raise DocumentNotFound(op.collection, op.doc_id)
                    staged[key] = apply_changes(current, op.data)
                elif op.kind == "delete":
                    staged[key] = None
                else:
                    msg = f"Unknown batch operation: {op.kind}"
                    raise ValueError(msg)

            for (collection, doc_id), data in staged.items():
                if data is None:
                    self._collections[collection].pop(doc_id, None)
                else:
                    self._collections[collection][doc_id] = data
