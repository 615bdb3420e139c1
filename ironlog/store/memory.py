"""In-process document store."""

from __future__ import annotations

import copy
from typing import Any

from ironlog.store.base import Collections, DocumentStore, WriteBatch, apply_operations


class MemoryDocumentStore(DocumentStore):
    """Keeps collections in a dict. Commits swap in a fully applied copy."""

    def __init__(self, collections: Collections | None = None) -> None:
        self._collections: Collections = copy.deepcopy(collections or {})
        self.commit_count = 0

    async def read_collection(self, collection: str) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._collections.get(collection, {}))

    async def commit(self, batch: WriteBatch) -> None:
        staged = copy.deepcopy(self._collections)
        apply_operations(staged, batch.operations)
        self._collections = staged
        self.commit_count += 1

    def dump(self) -> Collections:
        return copy.deepcopy(self._collections)
