"""Record store boundary and its backends."""

from movibeers.store.base import (
    DOCUMENT_ID,
    MAX_IN_VALUES,
    AlreadyExists,
    ArrayRemove,
    ArrayUnion,
    DocumentNotFound,
    Increment,
    PermissionDenied,
    Query,
    Record,
    RecordStore,
    StoreError,
    TransientStoreError,
    WriteBatch,
)
from movibeers.store.memory import MemoryRecordStore
from movibeers.store.retry import RetryingStore

__all__ = [
    "DOCUMENT_ID",
    "MAX_IN_VALUES",
    "AlreadyExists",
    "ArrayRemove",
    "ArrayUnion",
    "DocumentNotFound",
    "Increment",
    "MemoryRecordStore",
    "PermissionDenied",
    "Query",
    "Record",
    "RecordStore",
    "RetryingStore",
    "StoreError",
    "TransientStoreError",
    "WriteBatch",
]
