"""SQLAlchemy-backed record store.

All collections live in the ``documents`` table. Filters and ordering go
through JSON path extraction, so datetimes are stored as fixed-width UTC
strings that sort lexically in time order. Each batch is one transaction.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, and_, delete, func, or_, select, text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import (
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from movibeers.database import create_engine, create_session_factory
from movibeers.db.base import Base
from movibeers.db.models import DocumentRow
from movibeers.store.base import (
    DOCUMENT_ID,
    AlreadyExists,
    DocumentNotFound,
    Filter,
    PermissionDenied,
    Query,
    Record,
    RecordStore,
    StoreError,
    TransientStoreError,
    WriteOp,
    apply_changes,
    new_document_id,
)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# SQLSTATE insufficient_privilege
INSUFFICIENT_PRIVILEGE = "42501"


def encode_value(value: Any) -> Any:  # noqa: ANN401
    """Convert a document value into its JSON column representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def _column(name: str, sample: Any) -> ColumnElement[Any]:  # noqa: ANN401
    if name == DOCUMENT_ID:
        return DocumentRow.id
    element = DocumentRow.data[name]
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, int):
        return element.as_integer()
    if isinstance(sample, float):
        return element.as_float()
    return element.as_string()


def _condition(flt: Filter) -> ColumnElement[bool]:
    if flt.op == "in":
        values = [encode_value(v) for v in flt.value]
        if not values:
            return DocumentRow.id.is_(None)
        return _column(flt.field, values[0]).in_(values)

    value = encode_value(flt.value)
    column = _column(flt.field, value)
    if flt.op == "==":
        return column.is_(None) if value is None else column == value
    if flt.op == "<":
        return column < value
    if flt.op == "<=":
        return column <= value
    if flt.op == ">":
        return column > value
    return column >= value


def _translate(exc: SQLAlchemyError, collection: str, doc_id: str | None) -> StoreError:
    if isinstance(exc, IntegrityError):
        return AlreadyExists(collection, doc_id or "?")
    if isinstance(exc, DBAPIError) and getattr(exc.orig, "sqlstate", None) == INSUFFICIENT_PRIVILEGE:
        return PermissionDenied(str(exc))
    if isinstance(exc, (OperationalError, InterfaceError, PoolTimeoutError)):
        return TransientStoreError(str(exc))
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return TransientStoreError(str(exc))
    return StoreError(str(exc))


@contextmanager
def _store_errors(collection: str, doc_id: str | None = None) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise _translate(exc, collection, doc_id) from exc


class SqlRecordStore(RecordStore):
    """Document store on a relational database through async SQLAlchemy."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    def from_url(cls, url: str) -> SqlRecordStore:
        return cls(create_engine(url))

    async def create_schema(self) -> None:
        """Create the documents table directly (development and tests)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def _session(self) -> AsyncSession:
        return self._session_factory()

    def _select(self, collection: str, query: Query):  # noqa: ANN202
        stmt = select(DocumentRow).where(DocumentRow.collection == collection)
        for flt in query.filters:
            stmt = stmt.where(_condition(flt))
        return stmt

    async def insert(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        doc_id = doc_id or new_document_id()
        with _store_errors(collection, doc_id):
            async with self._session() as session, session.begin():
                session.add(DocumentRow(collection=collection, id=doc_id, data=encode_value(data)))
        return doc_id

    async def get(self, collection: str, doc_id: str) -> Record | None:
        with _store_errors(collection, doc_id):
            async with self._session() as session:
                row = await session.get(DocumentRow, (collection, doc_id))
                return None if row is None else Record(row.id, dict(row.data))

    async def query(self, collection: str, query: Query) -> list[Record]:
        stmt = self._select(collection, query)

        if query.ordering:
            first_desc = query.ordering[0][1]
            if query.cursor is not None:
                name, descending = query.ordering[0]
                value, cursor_id = query.cursor
                value = encode_value(value)
                column = _column(name, value)
                if descending:
                    stmt = stmt.where(or_(column < value, and_(column == value, DocumentRow.id < cursor_id)))
                else:
                    stmt = stmt.where(or_(column > value, and_(column == value, DocumentRow.id > cursor_id)))
            for name, descending in query.ordering:
                column = _column(name, None)
                stmt = stmt.order_by(column.desc() if descending else column.asc())
            stmt = stmt.order_by(DocumentRow.id.desc() if first_desc else DocumentRow.id.asc())
        else:
            stmt = stmt.order_by(DocumentRow.id.asc())

        if query.limit_to is not None:
            stmt = stmt.limit(query.limit_to)

        with _store_errors(collection):
            async with self._session() as session:
                result = await session.execute(stmt)
                return [Record(row.id, dict(row.data)) for row in result.scalars().all()]

    async def count(self, collection: str, query: Query) -> int:
        stmt = select(func.count()).select_from(DocumentRow).where(DocumentRow.collection == collection)
        for flt in query.filters:
            stmt = stmt.where(_condition(flt))
        with _store_errors(collection):
            async with self._session() as session:
                result = await session.execute(stmt)
                return int(result.scalar_one())

    async def _apply_update(self, session: AsyncSession, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        row = await session.get(DocumentRow, (collection, doc_id), with_for_update=True)
        if row is None:
            raise DocumentNotFound(collection, doc_id)
        row.data = encode_value(apply_changes(row.data, changes))

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        with _store_errors(collection, doc_id):
            async with self._session() as session, session.begin():
                await self._apply_update(session, collection, doc_id, changes)

    async def delete(self, collection: str, doc_id: str) -> bool:
        with _store_errors(collection, doc_id):
            async with self._session() as session, session.begin():
                result = await session.execute(
                    delete(DocumentRow).where(DocumentRow.collection == collection, DocumentRow.id == doc_id)
                )
                return (result.rowcount or 0) > 0

    async def commit_batch(self, ops: list[WriteOp]) -> None:
        current: WriteOp | None = None
        try:
            async with self._session() as session, session.begin():
                for op in ops:
                    current = op
                    if op.kind == "create":
                        session.add(DocumentRow(collection=op.collection, id=op.doc_id, data=encode_value(op.data)))
                        await session.flush()
                    elif op.kind == "update":
                        await self._apply_update(session, op.collection, op.doc_id, op.data)
                    elif op.kind == "delete":
                        await session.execute(
                            delete(DocumentRow).where(
                                DocumentRow.collection == op.collection, DocumentRow.id == op.doc_id
                            )
                        )
                    else:
                        msg = f"Unknown batch operation: {op.kind}"
                        raise ValueError(msg)
        except SQLAlchemyError as exc:
            collection = current.collection if current else "batch"
            raise _translate(exc, collection, current.doc_id if current else None) from exc

    async def ping(self) -> None:
        with _store_errors("health"):
            async with self._session() as session:
                await session.execute(text("SELECT 1"))

    async def close(self) -> None:
        await self._engine.dispose()
