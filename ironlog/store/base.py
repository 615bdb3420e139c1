"""
Document store contract used by the sync pipeline.

Collections hold documents keyed by id; each document is a JSON-compatible
dict. Writes go through a ``WriteBatch`` committed all-or-nothing.
"""

from __future__ import annotations

import copy
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal

ACTIVITIES = "ironman_logs"
WELLNESS = "daily_wellness"
MAP_COLLECTION = "mission_data"
MAP_DOCUMENT_ID = "paths"

Collections = dict[str, dict[str, dict[str, Any]]]


class StoreError(Exception):
    """Reading from or committing to the store failed."""


@dataclass(frozen=True)
class StoredDocument:
    id: str
    data: dict[str, Any]


@dataclass(frozen=True)
class WriteOperation:
    kind: Literal["set", "delete"]
    collection: str
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)
    merge: bool = False


class WriteBatch:
    """Ordered list of pending writes."""

    def __init__(self) -> None:
        self._operations: list[WriteOperation] = []

    @staticmethod
    def new_id() -> str:
        """Generate an id for a document that does not exist yet."""
        return uuid.uuid4().hex

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        *,
        merge: bool = False,
    ) -> WriteBatch:
        """Replace the document, or merge top-level fields into it."""
        self._operations.append(
            WriteOperation("set", collection, doc_id, copy.deepcopy(data), merge)
        )
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        self._operations.append(WriteOperation("delete", collection, doc_id))
        return self

    @property
    def operations(self) -> list[WriteOperation]:
        return list(self._operations)

    def __len__(self) -> int:
        return len(self._operations)


def apply_operations(
    collections: Collections, operations: list[WriteOperation]
) -> None:
    """Apply ``operations`` to ``collections`` in place."""
    for op in operations:
        docs = collections.setdefault(op.collection, {})
        if op.kind == "delete":
            docs.pop(op.doc_id, None)
        elif op.merge and op.doc_id in docs:
            docs[op.doc_id] = {**docs[op.doc_id], **op.data}
        else:
            docs[op.doc_id] = dict(op.data)


class DocumentStore(ABC):
    """Minimal document database used for activities, wellness and the map."""

    @abstractmethod
    async def read_collection(self, collection: str) -> dict[str, dict[str, Any]]:
        """Return every document of ``collection`` keyed by id."""

    @abstractmethod
    async def commit(self, batch: WriteBatch) -> None:
        """Apply every write of ``batch`` or none of them."""

    def batch(self) -> WriteBatch:
        return WriteBatch()

    async def list_activities(self) -> list[StoredDocument]:
        docs = await self.read_collection(ACTIVITIES)
        return [StoredDocument(doc_id, data) for doc_id, data in docs.items()]

    async def list_wellness(self) -> list[StoredDocument]:
        docs = await self.read_collection(WELLNESS)
        return [StoredDocument(doc_id, data) for doc_id, data in docs.items()]

    async def get_map_document(self) -> dict[str, Any] | None:
        docs = await self.read_collection(MAP_COLLECTION)
        return docs.get(MAP_DOCUMENT_ID)

    async def add_activity(self, data: dict[str, Any]) -> str:
        """Insert a manually entered activity and return its id."""
        batch = self.batch()
        doc_id = batch.new_id()
        batch.set(ACTIVITIES, doc_id, data)
        await self.commit(batch)
        return doc_id

    async def delete_activity(self, doc_id: str) -> None:
        await self.commit(self.batch().delete(ACTIVITIES, doc_id))

    async def set_map_document(self, data: dict[str, Any]) -> None:
        await self.commit(self.batch().set(MAP_COLLECTION, MAP_DOCUMENT_ID, data))

    async def delete_wellness(self) -> int:
        """Remove every wellness document; returns how many were deleted."""
        docs = await self.read_collection(WELLNESS)
        if not docs:
            return 0
        batch = self.batch()
        for doc_id in docs:
            batch.delete(WELLNESS, doc_id)
        await self.commit(batch)
        return len(docs)
