"""Document store backends"""

from ironlog.store.base import (
    ACTIVITIES,
    MAP_COLLECTION,
    MAP_DOCUMENT_ID,
    WELLNESS,
    DocumentStore,
    StoredDocument,
    StoreError,
    WriteBatch,
)
from ironlog.store.json_store import JsonDocumentStore
from ironlog.store.memory import MemoryDocumentStore

__all__ = [
    "ACTIVITIES",
    "MAP_COLLECTION",
    "MAP_DOCUMENT_ID",
    "WELLNESS",
    "DocumentStore",
    "JsonDocumentStore",
    "MemoryDocumentStore",
    "StoredDocument",
    "StoreError",
    "WriteBatch",
]
