"""Record store boundary: collection-scoped documents, queries and batches.

The store is the only persistence collaborator. Documents are flat-ish dicts
of JSON-compatible values plus ``datetime``/``date``; backends are responsible
for round-tripping those faithfully enough for range filters and ordering.
"""

from __future__ import annotations

import copy
import dataclasses
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

# Pseudo-field that addresses the document id in filters.
DOCUMENT_ID = "__id__"

# Upper bound on values in an ``in`` filter, as hosted document stores enforce.
MAX_IN_VALUES = 30

FILTER_OPS = frozenset({"==", "<", "<=", ">", ">=", "in"})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """Any failure reported by a store backend."""


class TransientStoreError(StoreError):
    """Network blips, timeouts, contention: safe to retry."""


class DocumentNotFound(StoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} does not exist")


class AlreadyExists(StoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} already exists")


class PermissionDenied(StoreError):
    """The backend refused the operation."""


# ---------------------------------------------------------------------------
# Field transforms
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Increment:
    """Atomically add ``amount`` to a numeric field (missing counts as 0)."""

    amount: int = 1


@dataclass(frozen=True)
class ArrayUnion:
    """Append values not already present in an array field."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:  # noqa: ANN401
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    """Remove every occurrence of the values from an array field."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:  # noqa: ANN401
        object.__setattr__(self, "values", tuple(values))


def apply_changes(data: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with plain values and transforms applied."""
    result = copy.deepcopy(data)
    for key, change in changes.items():
        if isinstance(change, Increment):
            current = result.get(key) or 0
            if not isinstance(current, (int, float)):
                msg = f"Cannot increment non-numeric field {key!r}"
                raise TypeError(msg)
            result[key] = current + change.amount
        elif isinstance(change, ArrayUnion):
            current = list(result.get(key) or [])
            for value in change.values:
                if value not in current:
                    current.append(value)
            result[key] = current
        elif isinstance(change, ArrayRemove):
            result[key] = [v for v in (result.get(key) or []) if v not in change.values]
        else:
            result[key] = copy.deepcopy(change)
    return result


def new_document_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class Query:
    """Immutable query builder: ``Query().where(...).order_by(...).limit(n)``.

    Ties on the first ordering field are broken by document id in the same
    direction, which is what makes ``start_after`` keyset paging stable.
    """

    filters: tuple[Filter, ...] = ()
    ordering: tuple[tuple[str, bool], ...] = ()
    limit_to: int | None = None
    cursor: tuple[Any, str] | None = None

    def where(self, field_name: str, op: str, value: Any) -> Query:  # noqa: ANN401
        if op not in FILTER_OPS:
            msg = f"Unsupported filter operator: {op}"
            raise ValueError(msg)
        if op == "in":
            value = list(value)
            if len(value) > MAX_IN_VALUES:
                msg = f"'in' filters accept at most {MAX_IN_VALUES} values, got {len(value)}"
                raise ValueError(msg)
        return dataclasses.replace(self, filters=(*self.filters, Filter(field_name, op, value)))

    def order_by(self, field_name: str, descending: bool = False) -> Query:
        return dataclasses.replace(self, ordering=(*self.ordering, (field_name, descending)))

    def limit(self, count: int) -> Query:
        return dataclasses.replace(self, limit_to=count)

    def start_after(self, value: Any, doc_id: str) -> Query:  # noqa: ANN401
        if not self.ordering:
            msg = "start_after requires an order_by clause"
            raise ValueError(msg)
        return dataclasses.replace(self, cursor=(value, doc_id))


@dataclass(frozen=True)
class Record:
    id: str
    data: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WriteOp:
    kind: str  # "create" | "update" | "delete"
    collection: str
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)


class WriteBatch:
    """Collects writes and commits them all-or-nothing.

    ``create`` fails the whole batch if the id is taken, ``update`` fails it if
    the document is missing; ``delete`` of a missing document is a no-op.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._ops: list[WriteOp] = []

    def __len__(self) -> int:
        return len(self._ops)

    def create(self, collection: str, doc_id: str, data: dict[str, Any]) -> WriteBatch:
        self._ops.append(WriteOp("create", collection, doc_id, data))
        return self

    def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> WriteBatch:
        self._ops.append(WriteOp("update", collection, doc_id, changes))
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        self._ops.append(WriteOp("delete", collection, doc_id))
        return self

    async def commit(self) -> None:
        if self._ops:
            await self._store.commit_batch(list(self._ops))
        self._ops.clear()


# ---------------------------------------------------------------------------
# Store interface
# ---------------------------------------------------------------------------


class RecordStore(ABC):
    """Async, collection-scoped document store."""

    @abstractmethod
    async def insert(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        """Create a document, returning its id. Raises AlreadyExists for a taken id."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Record | None:
        raise NotImplementedError

    @abstractmethod
    async def query(self, collection: str, query: Query) -> list[Record]:
        raise NotImplementedError

    @abstractmethod
    async def count(self, collection: str, query: Query) -> int:
        """Count documents matching the query's filters (ordering and limit ignored)."""
        raise NotImplementedError

    @abstractmethod
    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        """Apply a partial update. Raises DocumentNotFound."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False when it did not exist."""
        raise NotImplementedError

    @abstractmethod
    async def commit_batch(self, ops: list[WriteOp]) -> None:
        raise NotImplementedError

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def ping(self) -> None:  # noqa: B027
        """Raise if the backend is unreachable."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""
