"""Document store persisted as a single JSON file."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import aiofiles

from ironlog.store.base import (
    Collections,
    DocumentStore,
    StoreError,
    WriteBatch,
    apply_operations,
)
from ironlog.utils.logger import LoggerMixin


async def write_json_atomic(path: Path, data: Any, *, prefix: str) -> None:
    """Write ``data`` to ``path`` through a temp file and ``os.replace``."""

    serialized = json.dumps(data, ensure_ascii=False, default=str)

    def _write() -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                tmp_file.write(serialized)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(temp_path, path)
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except FileNotFoundError:
                    pass

    await asyncio.to_thread(_write)


class JsonDocumentStore(DocumentStore, LoggerMixin):
    """All collections live in one file, rewritten wholesale on every commit.

    Unlike the map cache, an unreadable store file is an error: treating it as
    empty would make the next sync insert duplicates of every activity.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def _load(self) -> Collections:
        if not self.path.exists():
            return {}
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                content = await f.read()
            data = json.loads(content) if content.strip() else {}
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read store file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Store file {self.path} does not hold a JSON object")
        return data

    async def read_collection(self, collection: str) -> dict[str, dict[str, Any]]:
        data = await self._load()
        docs = data.get(collection, {})
        return docs if isinstance(docs, dict) else {}

    async def commit(self, batch: WriteBatch) -> None:
        if not len(batch):
            return
        async with self._lock:
            data = await self._load()
            apply_operations(data, batch.operations)
            try:
                await write_json_atomic(self.path, data, prefix="store_")
            except OSError as e:
                raise StoreError(f"Cannot write store file {self.path}: {e}") from e

        self.logger.debug("Store batch committed", operations=len(batch))
